import logging
import uuid
from typing import List, Optional, Dict, Any, Set

from sqlalchemy import select, delete, func

from database.models import EntryEnrichment, CareerNarrative, ParsedEntity
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

ENRICHMENT_FIELDS = (
    'insights',
    'skills_identified',
    'experience_level',
    'career_progression',
    'market_relevance',
    'recommendations',
    'parsed_structure',
    'confidence_score',
    'model_version',
    'enrichment_metadata',
)


class EnrichmentRepository(BaseRepository):
    def get_for_entity(self, entity_id: uuid.UUID) -> Optional[EntryEnrichment]:
        stmt = select(EntryEnrichment).where(EntryEnrichment.entity_id == entity_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def upsert_enrichment(
        self,
        entity: ParsedEntity,
        owner_id: uuid.UUID,
        data: Dict[str, Any]
    ) -> EntryEnrichment:
        """Insert the enrichment for an entity, or update the existing row in place."""
        existing = self.get_for_entity(entity.id)

        if existing:
            for key in ENRICHMENT_FIELDS:
                if key in data:
                    setattr(existing, key, data[key])
            record = existing
        else:
            record = EntryEnrichment(
                entity_id=entity.id,
                version_id=entity.version_id,
                owner_id=owner_id,
                **{key: data[key] for key in ENRICHMENT_FIELDS if key in data}
            )
            self.db.add(record)

        self.db.flush()
        return record

    def enriched_entity_ids(self, version_id: uuid.UUID) -> Set[uuid.UUID]:
        stmt = select(EntryEnrichment.entity_id).where(EntryEnrichment.version_id == version_id)
        return set(self.db.execute(stmt).scalars().all())

    def has_enrichment(self, version_id: uuid.UUID) -> bool:
        stmt = select(func.count(EntryEnrichment.id)).where(EntryEnrichment.version_id == version_id)
        return self.db.execute(stmt).scalar_one() > 0

    # --- Narratives ---

    def list_narratives(self, version_id: uuid.UUID) -> List[CareerNarrative]:
        stmt = select(CareerNarrative).where(
            CareerNarrative.version_id == version_id
        ).order_by(CareerNarrative.narrative_type)
        return list(self.db.execute(stmt).scalars().all())

    def has_narratives(self, version_id: uuid.UUID) -> bool:
        stmt = select(func.count(CareerNarrative.id)).where(CareerNarrative.version_id == version_id)
        return self.db.execute(stmt).scalar_one() > 0

    def replace_narratives(
        self,
        version_id: uuid.UUID,
        owner_id: uuid.UUID,
        narratives: List[Dict[str, Any]]
    ) -> List[CareerNarrative]:
        self.db.execute(delete(CareerNarrative).where(CareerNarrative.version_id == version_id))

        records = []
        for narrative in narratives:
            record = CareerNarrative(
                version_id=version_id,
                owner_id=owner_id,
                narrative_type=narrative['narrative_type'],
                narrative_text=narrative['narrative_text'],
                narrative_explanation=narrative.get('narrative_explanation'),
                confidence_score=narrative.get('confidence_score', 0.0),
                model_version=narrative.get('model_version')
            )
            self.db.add(record)
            records.append(record)

        self.db.flush()
        return records
