import uuid

from sqlalchemy import Column, Text, Float, Boolean, Integer, TIMESTAMP, ForeignKey, Index, Uuid, UniqueConstraint

from .base import Base, JSONType, utcnow


class ResumeDiff(Base):
    """
    Classified comparison between one parsed entity and at most one
    confirmed profile entry.

    One live row per (version, entity); re-running analysis updates it.
    Resolution columns stay NULL until a merge decision is applied.
    """
    __tablename__ = 'resume_diffs'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    version_id = Column(Uuid, ForeignKey('resume_versions.id'), nullable=False)
    entity_id = Column(Uuid, ForeignKey('parsed_resume_entities.id'), nullable=False)

    # Matched confirmed-profile entry, if any
    profile_entity_id = Column(Text)
    profile_entity_type = Column(Text)

    diff_type = Column(Text, nullable=False)  # identical|equivalent|conflicting|new
    similarity_score = Column(Float, nullable=False, default=0.0)
    confidence_score = Column(Float, nullable=False, default=0.0)
    justification = Column(Text)
    requires_review = Column(Boolean, nullable=False, default=False)
    diff_metadata = Column('metadata', JSONType, nullable=False, default=dict)

    # Resolution
    resolved_at = Column(TIMESTAMP(timezone=True))
    resolved_by = Column(Uuid)
    resolution_type = Column(Text)  # accept|reject|override
    merge_decision_id = Column(Uuid)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint('version_id', 'entity_id', name='uq_resume_diffs_version_entity'),
        Index('idx_resume_diffs_review', 'version_id', 'requires_review'),
    )

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None


class MergeDecision(Base):
    """
    A ruling (accept / reject / override) on one diff.

    Append-only. The entity's raw value and confidence are snapshotted at
    decision time for audit.
    """
    __tablename__ = 'merge_decisions'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, nullable=False)
    version_id = Column(Uuid, ForeignKey('resume_versions.id'), nullable=False)
    entity_id = Column(Uuid, nullable=False)  # Not a FK: decisions outlive re-extraction

    profile_entity_id = Column(Text)
    profile_entity_type = Column(Text)
    field_name = Column(Text, nullable=False)

    decision_type = Column(Text, nullable=False)  # accept|reject|override
    parsed_value = Column(Text, nullable=False)
    override_value = Column(Text)
    confidence_score = Column(Float, nullable=False, default=0.0)
    justification = Column(Text)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    # Recording order within the version; breaks created_at ties
    sequence = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint('version_id', 'sequence', name='uq_merge_decisions_version_sequence'),
        Index('idx_merge_decisions_version_owner', 'version_id', 'owner_id', 'created_at'),
    )
