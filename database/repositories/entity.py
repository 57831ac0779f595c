import logging
import uuid
from typing import List, Optional, Dict, Any

from sqlalchemy import select, delete, func

from database.models import ParsedEntity, EntryEnrichment, ResumeDiff
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class EntityRepository(BaseRepository):
    def get_entity(self, entity_id: uuid.UUID) -> Optional[ParsedEntity]:
        stmt = select(ParsedEntity).where(ParsedEntity.id == entity_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_entities(self, version_id: uuid.UUID) -> List[ParsedEntity]:
        stmt = select(ParsedEntity).where(
            ParsedEntity.version_id == version_id
        ).order_by(ParsedEntity.field_name)
        return list(self.db.execute(stmt).scalars().all())

    def count_entities(self, version_id: uuid.UUID) -> int:
        stmt = select(func.count(ParsedEntity.id)).where(ParsedEntity.version_id == version_id)
        return self.db.execute(stmt).scalar_one()

    def replace_entities(
        self,
        version_id: uuid.UUID,
        entities: List[Dict[str, Any]]
    ) -> List[ParsedEntity]:
        """Replace the whole entity set of a version.

        Enrichments and diffs of the old entities are removed first; merge
        decisions are an audit trail and are kept. Runs inside the caller's
        transaction, so readers see either the old set or the new one.
        """
        old_ids = select(ParsedEntity.id).where(ParsedEntity.version_id == version_id)
        self.db.execute(delete(ResumeDiff).where(ResumeDiff.entity_id.in_(old_ids)))
        self.db.execute(delete(EntryEnrichment).where(EntryEnrichment.entity_id.in_(old_ids)))
        self.db.execute(delete(ParsedEntity).where(ParsedEntity.version_id == version_id))

        records = []
        for entity in entities:
            record = ParsedEntity(
                version_id=version_id,
                field_name=entity['field_name'],
                raw_value=entity['raw_value'],
                value_kind=entity.get('value_kind', 'text'),
                confidence_score=entity.get('confidence_score', 0.0),
                model_version=entity.get('model_version'),
                source_type=entity.get('source_type', 'ai_extraction')
            )
            self.db.add(record)
            records.append(record)

        self.db.flush()
        return records
