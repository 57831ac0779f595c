import uuid

from sqlalchemy import (
    Column, Text, Integer, Boolean, BigInteger, TIMESTAMP, ForeignKey, Index, Uuid, UniqueConstraint
)
from sqlalchemy.orm import relationship

from .base import Base, JSONType, utcnow
from .enums import ProcessingStage


class ResumeStream(Base):
    """
    Named, user-owned collection of uploaded resume versions.

    Deleting a stream requires its versions (and their entities) to be deleted
    first; the application performs that cascade explicitly.
    """
    __tablename__ = 'resume_streams'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, nullable=False, index=True)

    name = Column(Text, nullable=False)
    description = Column(Text)
    tags = Column(JSONType, nullable=False, default=list)
    auto_tagged = Column(Boolean, nullable=False, default=False)  # Created without user tags

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    versions = relationship("ResumeVersion", back_populates="stream", order_by="ResumeVersion.version_number")

    __table_args__ = (
        Index('idx_resume_streams_owner_name', 'owner_id', 'name'),
    )


class ResumeVersion(Base):
    """
    One immutable uploaded document snapshot.

    The content hash is unique per owner: re-uploading identical bytes
    returns the existing version instead of creating a new one.
    """
    __tablename__ = 'resume_versions'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    stream_id = Column(Uuid, ForeignKey('resume_streams.id'), nullable=False)
    owner_id = Column(Uuid, nullable=False)  # Denormalised from the stream for per-owner dedup

    version_number = Column(Integer, nullable=False)  # 1, 2, 3... per stream
    content_hash = Column(Text, nullable=False)

    # File details (raw bytes live in external storage)
    file_name = Column(Text)
    size_bytes = Column(BigInteger, nullable=False)
    mime_type = Column(Text, nullable=False)
    upload_metadata = Column(JSONType, nullable=False, default=dict)

    # Processing state (the reported stage is derived, see knowledge.processing_status)
    processing_status = Column(Text, nullable=False, default=ProcessingStage.PENDING.value)
    processing_stage = Column(Text, nullable=False, default="upload")
    processing_progress = Column(Integer, nullable=False, default=0)  # 0-100
    processing_error = Column(Text)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    stream = relationship("ResumeStream", back_populates="versions")

    __table_args__ = (
        UniqueConstraint('stream_id', 'version_number', name='uq_resume_versions_stream_number'),
        UniqueConstraint('owner_id', 'content_hash', name='uq_resume_versions_owner_hash'),
        Index('idx_resume_versions_owner_hash', 'owner_id', 'content_hash'),
    )
