import logging
import uuid
from typing import List, Optional, Dict, Any

from sqlalchemy import select, func

from database.models import ResumeStream, ResumeVersion, ProcessingStage
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class StreamRepository(BaseRepository):
    # --- Streams ---

    def create_stream(
        self,
        owner_id: uuid.UUID,
        name: str,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None
    ) -> ResumeStream:
        tags = list(tags or [])
        stream = ResumeStream(
            owner_id=owner_id,
            name=name,
            description=description,
            tags=tags,
            auto_tagged=len(tags) == 0
        )
        self.db.add(stream)
        self.db.flush()
        return stream

    def get_stream(self, stream_id: uuid.UUID) -> Optional[ResumeStream]:
        stmt = select(ResumeStream).where(ResumeStream.id == stream_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def find_stream_by_name(self, owner_id: uuid.UUID, name: str) -> Optional[ResumeStream]:
        stmt = select(ResumeStream).where(
            ResumeStream.owner_id == owner_id,
            ResumeStream.name == name
        ).order_by(ResumeStream.created_at).limit(1)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_streams(self, owner_id: uuid.UUID) -> List[ResumeStream]:
        stmt = select(ResumeStream).where(
            ResumeStream.owner_id == owner_id
        ).order_by(ResumeStream.updated_at.desc())
        return list(self.db.execute(stmt).scalars().all())

    def update_stream(self, stream: ResumeStream, updates: Dict[str, Any]) -> ResumeStream:
        """Apply name/description/tags updates; unknown keys are ignored."""
        for key in ('name', 'description', 'tags'):
            if key in updates and updates[key] is not None:
                setattr(stream, key, list(updates[key]) if key == 'tags' else updates[key])
        self.db.flush()
        return stream

    # --- Versions ---

    def get_version(self, version_id: uuid.UUID) -> Optional[ResumeVersion]:
        stmt = select(ResumeVersion).where(ResumeVersion.id == version_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def find_version_by_hash(self, owner_id: uuid.UUID, content_hash: str) -> Optional[ResumeVersion]:
        """Look up an existing version with the same content for this owner."""
        stmt = select(ResumeVersion).where(
            ResumeVersion.owner_id == owner_id,
            ResumeVersion.content_hash == content_hash
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def next_version_number(self, stream_id: uuid.UUID) -> int:
        stmt = select(func.max(ResumeVersion.version_number)).where(
            ResumeVersion.stream_id == stream_id
        )
        current = self.db.execute(stmt).scalar_one_or_none()
        return (current or 0) + 1

    def create_version(
        self,
        stream: ResumeStream,
        content_hash: str,
        size_bytes: int,
        mime_type: str,
        file_name: Optional[str] = None,
        upload_metadata: Optional[Dict[str, Any]] = None
    ) -> ResumeVersion:
        version = ResumeVersion(
            stream_id=stream.id,
            owner_id=stream.owner_id,
            version_number=self.next_version_number(stream.id),
            content_hash=content_hash,
            size_bytes=size_bytes,
            mime_type=mime_type,
            file_name=file_name,
            upload_metadata=upload_metadata or {},
            processing_status=ProcessingStage.PENDING.value,
            processing_stage="upload",
            processing_progress=0
        )
        self.db.add(version)
        self.db.flush()  # Generate ID
        return version

    def list_versions(self, stream_id: uuid.UUID) -> List[ResumeVersion]:
        stmt = select(ResumeVersion).where(
            ResumeVersion.stream_id == stream_id
        ).order_by(ResumeVersion.version_number.desc())
        return list(self.db.execute(stmt).scalars().all())

    def update_processing(
        self,
        version: ResumeVersion,
        status: Optional[str] = None,
        stage: Optional[str] = None,
        progress: Optional[int] = None,
        error: Optional[str] = None
    ) -> ResumeVersion:
        if status is not None:
            version.processing_status = status
        if stage is not None:
            version.processing_stage = stage
        if progress is not None:
            version.processing_progress = max(0, min(100, int(progress)))
        version.processing_error = error
        self.db.flush()
        return version
