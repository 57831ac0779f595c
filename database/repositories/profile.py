import logging
import uuid
from typing import List, Optional

from sqlalchemy import select

from database.models import ConfirmedProfileEntry, utcnow
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class ProfileRepository(BaseRepository):
    def list_for_owner(self, owner_id: uuid.UUID) -> List[ConfirmedProfileEntry]:
        stmt = select(ConfirmedProfileEntry).where(
            ConfirmedProfileEntry.owner_id == owner_id
        ).order_by(
            ConfirmedProfileEntry.entity_type,
            ConfirmedProfileEntry.entity_id,
            ConfirmedProfileEntry.field_name
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_by_key(
        self,
        owner_id: uuid.UUID,
        entity_type: str,
        entity_id: str,
        field_name: str
    ) -> Optional[ConfirmedProfileEntry]:
        stmt = select(ConfirmedProfileEntry).where(
            ConfirmedProfileEntry.owner_id == owner_id,
            ConfirmedProfileEntry.entity_type == entity_type,
            ConfirmedProfileEntry.entity_id == entity_id,
            ConfirmedProfileEntry.field_name == field_name
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def upsert_entry(
        self,
        owner_id: uuid.UUID,
        entity_type: str,
        entity_id: str,
        field_name: str,
        confirmed_value: str,
        confidence_score: float,
        source: str
    ) -> ConfirmedProfileEntry:
        """Write a confirmed fact keyed by (owner, entity type, entity id, field name)."""
        existing = self.get_by_key(owner_id, entity_type, entity_id, field_name)
        now = utcnow()

        if existing:
            existing.confirmed_value = confirmed_value
            existing.confidence_score = confidence_score
            existing.source = source
            existing.last_confirmed_at = now
            entry = existing
        else:
            entry = ConfirmedProfileEntry(
                owner_id=owner_id,
                entity_type=entity_type,
                entity_id=entity_id,
                field_name=field_name,
                confirmed_value=confirmed_value,
                confidence_score=confidence_score,
                source=source,
                last_confirmed_at=now
            )
            self.db.add(entry)

        self.db.flush()
        return entry
