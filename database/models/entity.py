import uuid

from sqlalchemy import Column, Text, Float, TIMESTAMP, ForeignKey, Index, Uuid, UniqueConstraint

from .base import Base, JSONType, utcnow


class ParsedEntity(Base):
    """
    One extracted field of a resume version.

    Field names are dotted paths into the extraction document
    (e.g. ``work_experience.0.title``). The entity set of a version is
    replaced as a whole on re-extraction.
    """
    __tablename__ = 'parsed_resume_entities'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    version_id = Column(Uuid, ForeignKey('resume_versions.id'), nullable=False, index=True)

    field_name = Column(Text, nullable=False)
    raw_value = Column(Text, nullable=False)
    value_kind = Column(Text, nullable=False, default="text")  # text|structured
    confidence_score = Column(Float, nullable=False, default=0.0)  # 0.0-1.0, from the extractor

    model_version = Column(Text)
    source_type = Column(Text, nullable=False, default="ai_extraction")

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index('idx_parsed_entities_version_field', 'version_id', 'field_name'),
    )


class EntryEnrichment(Base):
    """
    AI-derived analysis attached 1:1 to a parsed entity.

    A forced refresh updates the row in place, so the enrichment keeps its id.
    """
    __tablename__ = 'entry_enrichment'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    entity_id = Column(Uuid, ForeignKey('parsed_resume_entities.id'), nullable=False, unique=True)
    version_id = Column(Uuid, nullable=False, index=True)
    owner_id = Column(Uuid, nullable=False)

    insights = Column(JSONType, nullable=False, default=list)  # Ordered
    skills_identified = Column(JSONType, nullable=False, default=list)  # Sorted, de-duplicated
    experience_level = Column(Text)
    career_progression = Column(Text)
    market_relevance = Column(Text)
    recommendations = Column(JSONType, nullable=False, default=list)  # Ordered
    parsed_structure = Column(JSONType)

    confidence_score = Column(Float, nullable=False, default=0.0)
    model_version = Column(Text)
    enrichment_metadata = Column(JSONType, nullable=False, default=dict)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class CareerNarrative(Base):
    """Version-level narrative text (career summary, strengths, trajectory)."""
    __tablename__ = 'career_narratives'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    version_id = Column(Uuid, ForeignKey('resume_versions.id'), nullable=False, index=True)
    owner_id = Column(Uuid, nullable=False)

    narrative_type = Column(Text, nullable=False)  # career_summary|key_strengths|growth_trajectory
    narrative_text = Column(Text, nullable=False)
    narrative_explanation = Column(Text)

    confidence_score = Column(Float, nullable=False, default=0.0)
    model_version = Column(Text)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint('version_id', 'narrative_type', name='uq_career_narratives_version_type'),
    )
