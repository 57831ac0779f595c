"""
Document Store - resume streams and their immutable versions.

Versions are deduplicated per owner by a SHA-256 fingerprint of the raw
bytes. The bytes themselves live in external storage; only the fingerprint
and file details are recorded here.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional, List, Dict, Any, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.config_loader import PipelineConfig
from core.exceptions import (
    StreamNotFoundError, VersionNotFoundError, UploadRejectedError, DeletionError
)
from core.utils import parse_uuid, generate_file_fingerprint
from database.models import ResumeStream, ResumeVersion
from database.repository import KnowledgeRepository

logger = logging.getLogger(__name__)

Identifier = Union[str, uuid.UUID]


@dataclass
class UploadResult:
    version: ResumeVersion
    is_duplicate: bool


class DocumentStore:
    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()

    # --- Streams ---

    def create_stream(
        self,
        repo: KnowledgeRepository,
        owner_id: Identifier,
        name: str,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None
    ) -> ResumeStream:
        owner = parse_uuid(owner_id, "owner id")
        if not name or not name.strip():
            raise UploadRejectedError("Stream name must not be empty")

        stream = repo.streams.create_stream(owner, name.strip(), description, tags)
        logger.info(f"Created stream '{stream.name}' ({stream.id}) for owner {owner}")
        return stream

    def get_or_create_stream(
        self,
        repo: KnowledgeRepository,
        owner_id: Identifier,
        name: Optional[str] = None,
        tags: Optional[List[str]] = None
    ) -> ResumeStream:
        owner = parse_uuid(owner_id, "owner id")
        name = (name or self.config.default_stream_name).strip()

        existing = repo.streams.find_stream_by_name(owner, name)
        if existing:
            return existing
        return self.create_stream(repo, owner, name, tags=tags)

    def get_stream(
        self,
        repo: KnowledgeRepository,
        owner_id: Identifier,
        stream_id: Identifier
    ) -> ResumeStream:
        owner = parse_uuid(owner_id, "owner id")
        sid = parse_uuid(stream_id, "stream id")

        stream = repo.streams.get_stream(sid)
        # Another owner's stream is reported exactly like a missing one
        if stream is None or stream.owner_id != owner:
            raise StreamNotFoundError(f"Resume stream not found: {sid}")
        return stream

    def update_stream(
        self,
        repo: KnowledgeRepository,
        owner_id: Identifier,
        stream_id: Identifier,
        updates: Dict[str, Any]
    ) -> ResumeStream:
        stream = self.get_stream(repo, owner_id, stream_id)
        return repo.streams.update_stream(stream, updates)

    def list_streams(self, repo: KnowledgeRepository, owner_id: Identifier) -> List[ResumeStream]:
        return repo.streams.list_streams(parse_uuid(owner_id, "owner id"))

    # --- Versions ---

    def list_versions(
        self,
        repo: KnowledgeRepository,
        owner_id: Identifier,
        stream_id: Identifier
    ) -> List[ResumeVersion]:
        stream = self.get_stream(repo, owner_id, stream_id)
        return repo.streams.list_versions(stream.id)

    def get_version(
        self,
        repo: KnowledgeRepository,
        version_id: Identifier,
        owner_id: Optional[Identifier] = None
    ) -> ResumeVersion:
        """Load a version, optionally requiring it to belong to ``owner_id``."""
        vid = parse_uuid(version_id, "version id")
        owner = parse_uuid(owner_id, "owner id") if owner_id is not None else None
        version = repo.streams.get_version(vid)
        if version is None or (owner is not None and version.owner_id != owner):
            raise VersionNotFoundError(f"Resume version not found: {vid}")
        return version

    def validate_upload(self, data: bytes, mime_type: str) -> None:
        if not data:
            raise UploadRejectedError("Uploaded file is empty")
        if mime_type not in self.config.allowed_mime_types:
            allowed = ', '.join(self.config.allowed_mime_types)
            raise UploadRejectedError(f"Unsupported file type: {mime_type}. Allowed types: {allowed}")
        if len(data) > self.config.max_upload_bytes:
            limit_mb = self.config.max_upload_bytes // (1024 * 1024)
            raise UploadRejectedError(f"File too large: {len(data)} bytes (limit {limit_mb}MB)")

    def upload_version(
        self,
        repo: KnowledgeRepository,
        owner_id: Identifier,
        data: bytes,
        mime_type: str,
        file_name: Optional[str] = None,
        stream_id: Optional[Identifier] = None,
        stream_name: Optional[str] = None,
        tags: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> UploadResult:
        """Register an uploaded document as a new version, or detect a re-upload.

        Identical bytes already uploaded by the same owner return the existing
        version with ``is_duplicate=True`` and nothing is written. Otherwise the
        version is appended to the given stream (or the owner's stream named
        ``stream_name``, created on demand) with the next version number.
        """
        owner = parse_uuid(owner_id, "owner id")
        self.validate_upload(data, mime_type)

        content_hash = generate_file_fingerprint(data)
        existing = repo.streams.find_version_by_hash(owner, content_hash)
        if existing:
            logger.info(f"Duplicate upload for owner {owner}: returning version {existing.id}")
            return UploadResult(version=existing, is_duplicate=True)

        if stream_id is not None:
            stream = self.get_stream(repo, owner, stream_id)
        else:
            stream = self.get_or_create_stream(repo, owner, stream_name, tags)

        try:
            with repo.savepoint():
                version = repo.streams.create_version(
                    stream,
                    content_hash=content_hash,
                    size_bytes=len(data),
                    mime_type=mime_type,
                    file_name=file_name,
                    upload_metadata=metadata
                )
        except IntegrityError:
            # A concurrent upload of the same bytes won the race
            existing = repo.streams.find_version_by_hash(owner, content_hash)
            if existing is None:
                raise
            logger.info(f"Concurrent duplicate upload for owner {owner}: returning version {existing.id}")
            return UploadResult(version=existing, is_duplicate=True)

        logger.info(
            f"Uploaded version {version.version_number} ({version.id}) to stream "
            f"'{stream.name}' for owner {owner}"
        )
        return UploadResult(version=version, is_duplicate=False)

    # --- Owner deletion ---

    def preview_owner_deletion(self, repo: KnowledgeRepository, owner_id: Identifier) -> Dict[str, int]:
        """Per-table row counts that delete_all_for_owner would remove."""
        owner = parse_uuid(owner_id, "owner id")
        return dict(repo.owner_data.count_owner_rows(owner))

    def delete_all_for_owner(self, repo: KnowledgeRepository, owner_id: Identifier) -> Dict[str, int]:
        """Delete every row the owner has, children before parents.

        Any failure aborts the whole deletion; the caller's transaction is
        expected to roll back so the owner is never left half-deleted.
        """
        owner = parse_uuid(owner_id, "owner id")
        logger.info("=" * 60)
        logger.info(f"Deleting all resume data for owner {owner}")

        try:
            with repo.savepoint():
                deleted = repo.owner_data.delete_owner_rows(owner)
        except SQLAlchemyError as e:
            logger.error(f"Owner deletion failed for {owner}: {e}")
            raise DeletionError(f"Failed to delete data for owner {owner}: {e}") from e

        summary = dict(deleted)
        logger.info(f"Deleted {sum(summary.values())} rows for owner {owner}: {summary}")
        logger.info("=" * 60)
        return summary
