import logging
import uuid
from typing import List, Tuple, Any

from sqlalchemy import select, delete, func

from database.models import (
    ResumeStream, ResumeVersion, ParsedEntity, EntryEnrichment, CareerNarrative,
    ConfirmedProfileEntry, ResumeDiff, MergeDecision
)
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class OwnerDataRepository(BaseRepository):
    """Owner-wide counting and deletion.

    The store is not trusted to cascade, so tables are visited in foreign-key
    dependency order: rows referencing entities, entities, versions, streams.
    """

    def _owned_version_ids(self, owner_id: uuid.UUID):
        return select(ResumeVersion.id).where(ResumeVersion.owner_id == owner_id)

    def _owned_entity_ids(self, owner_id: uuid.UUID):
        return select(ParsedEntity.id).where(ParsedEntity.version_id.in_(self._owned_version_ids(owner_id)))

    def _plan(self, owner_id: uuid.UUID) -> List[Tuple[str, Any, Any]]:
        """(table name, model, where clause) in deletion order."""
        return [
            (MergeDecision.__tablename__, MergeDecision, MergeDecision.owner_id == owner_id),
            (ResumeDiff.__tablename__, ResumeDiff, ResumeDiff.version_id.in_(self._owned_version_ids(owner_id))),
            (EntryEnrichment.__tablename__, EntryEnrichment, EntryEnrichment.entity_id.in_(self._owned_entity_ids(owner_id))),
            (CareerNarrative.__tablename__, CareerNarrative, CareerNarrative.version_id.in_(self._owned_version_ids(owner_id))),
            (ParsedEntity.__tablename__, ParsedEntity, ParsedEntity.version_id.in_(self._owned_version_ids(owner_id))),
            (ResumeVersion.__tablename__, ResumeVersion, ResumeVersion.owner_id == owner_id),
            (ResumeStream.__tablename__, ResumeStream, ResumeStream.owner_id == owner_id),
            (ConfirmedProfileEntry.__tablename__, ConfirmedProfileEntry, ConfirmedProfileEntry.owner_id == owner_id),
        ]

    def count_owner_rows(self, owner_id: uuid.UUID) -> List[Tuple[str, int]]:
        counts = []
        for table_name, model, clause in self._plan(owner_id):
            stmt = select(func.count()).select_from(model).where(clause)
            counts.append((table_name, self.db.execute(stmt).scalar_one()))
        return counts

    def delete_owner_rows(self, owner_id: uuid.UUID) -> List[Tuple[str, int]]:
        deleted = []
        for table_name, model, clause in self._plan(owner_id):
            result = self.db.execute(delete(model).where(clause).execution_options(synchronize_session=False))
            deleted.append((table_name, result.rowcount))
            logger.debug(f"Deleted {result.rowcount} rows from {table_name} for owner {owner_id}")
        self.db.expire_all()
        return deleted
