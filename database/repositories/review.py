import logging
import uuid
from typing import List, Optional, Dict, Any

from sqlalchemy import select, func

from database.models import ResumeDiff, MergeDecision, utcnow
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class ReviewRepository(BaseRepository):
    # --- Diffs ---

    def get_diff(self, version_id: uuid.UUID, entity_id: uuid.UUID) -> Optional[ResumeDiff]:
        stmt = select(ResumeDiff).where(
            ResumeDiff.version_id == version_id,
            ResumeDiff.entity_id == entity_id
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def upsert_diff(
        self,
        version_id: uuid.UUID,
        entity_id: uuid.UUID,
        data: Dict[str, Any]
    ) -> ResumeDiff:
        """Write the analysis result for (version, entity).

        A re-run replaces the classification and clears any earlier
        resolution, since the old ruling applied to the old comparison.
        """
        existing = self.get_diff(version_id, entity_id)

        if existing:
            diff = existing
        else:
            diff = ResumeDiff(version_id=version_id, entity_id=entity_id)
            self.db.add(diff)

        diff.profile_entity_id = data.get('profile_entity_id')
        diff.profile_entity_type = data.get('profile_entity_type')
        diff.diff_type = data['diff_type']
        diff.similarity_score = data.get('similarity_score', 0.0)
        diff.confidence_score = data.get('confidence_score', 0.0)
        diff.justification = data.get('justification')
        diff.requires_review = bool(data.get('requires_review', False))
        diff.diff_metadata = data.get('metadata', {})
        diff.resolved_at = None
        diff.resolved_by = None
        diff.resolution_type = None
        diff.merge_decision_id = None

        self.db.flush()
        return diff

    def list_diffs(self, version_id: uuid.UUID) -> List[ResumeDiff]:
        stmt = select(ResumeDiff).where(
            ResumeDiff.version_id == version_id
        ).order_by(ResumeDiff.created_at.desc())
        return list(self.db.execute(stmt).scalars().all())

    def list_pending_review(self, version_id: uuid.UUID) -> List[ResumeDiff]:
        stmt = select(ResumeDiff).where(
            ResumeDiff.version_id == version_id,
            ResumeDiff.requires_review.is_(True),
            ResumeDiff.resolved_at.is_(None)
        ).order_by(ResumeDiff.created_at)
        return list(self.db.execute(stmt).scalars().all())

    def mark_resolved(
        self,
        version_id: uuid.UUID,
        entity_id: uuid.UUID,
        resolved_by: uuid.UUID,
        resolution_type: str,
        decision_id: uuid.UUID
    ) -> Optional[ResumeDiff]:
        diff = self.get_diff(version_id, entity_id)
        if diff is None:
            logger.warning(f"No diff to resolve for entity {entity_id} in version {version_id}")
            return None

        diff.requires_review = False
        diff.resolved_at = utcnow()
        diff.resolved_by = resolved_by
        diff.resolution_type = resolution_type
        diff.merge_decision_id = decision_id
        self.db.flush()
        return diff

    # --- Decisions ---

    def next_decision_sequence(self, version_id: uuid.UUID) -> int:
        stmt = select(func.coalesce(func.max(MergeDecision.sequence), 0)).where(
            MergeDecision.version_id == version_id
        )
        return self.db.execute(stmt).scalar_one() + 1

    def add_decision(self, **fields) -> MergeDecision:
        """Append a decision, numbered after the version's earlier ones."""
        fields.setdefault('sequence', self.next_decision_sequence(fields['version_id']))
        decision = MergeDecision(**fields)
        self.db.add(decision)
        self.db.flush()
        return decision

    def list_decisions(
        self,
        version_id: uuid.UUID,
        owner_id: uuid.UUID,
        oldest_first: bool = True
    ) -> List[MergeDecision]:
        if oldest_first:
            order = (MergeDecision.created_at.asc(), MergeDecision.sequence.asc())
        else:
            order = (MergeDecision.created_at.desc(), MergeDecision.sequence.desc())
        stmt = select(MergeDecision).where(
            MergeDecision.version_id == version_id,
            MergeDecision.owner_id == owner_id
        ).order_by(*order)
        return list(self.db.execute(stmt).scalars().all())
