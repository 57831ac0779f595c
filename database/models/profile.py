import uuid

from sqlalchemy import Column, Text, Float, TIMESTAMP, Index, Uuid, UniqueConstraint

from .base import Base, utcnow
from .enums import ProfileSource


class ConfirmedProfileEntry(Base):
    """
    A fact the owner has accepted as true about themselves.

    At most one live row per (owner, entity type, entity id, field name);
    writes upsert on that key and the last committed write wins.
    """
    __tablename__ = 'user_confirmed_profile'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, nullable=False)

    entity_type = Column(Text, nullable=False)  # work_experience|education|skills|...
    entity_id = Column(Text, nullable=False)  # Logical id, may be shared across fields
    field_name = Column(Text, nullable=False)

    confirmed_value = Column(Text, nullable=False)
    confidence_score = Column(Float, nullable=False, default=1.0)
    source = Column(Text, nullable=False, default=ProfileSource.MANUAL.value)

    last_confirmed_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint('owner_id', 'entity_type', 'entity_id', 'field_name', name='uq_confirmed_profile_key'),
        Index('idx_confirmed_profile_owner', 'owner_id', 'entity_type'),
    )
