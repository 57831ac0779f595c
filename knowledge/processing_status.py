"""
Processing State Tracker - per-version stage/progress read model.

The reported stage is never read back from storage. It is recomputed on
every read from the raw signals (stored status plus the presence of
entities, enrichments and narratives), so a flag that lands before the
status row is updated still produces the right answer.
"""
import logging
import uuid
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional, Dict, Any, Union

from core.exceptions import VersionNotFoundError
from core.utils import parse_uuid, clamp
from database.models import ProcessingStage, ResumeVersion
from database.repository import KnowledgeRepository

logger = logging.getLogger(__name__)


def derive_processing_stage(
    processing_status: Optional[str],
    has_entities: bool,
    has_enrichment: bool,
    has_narratives: bool
) -> ProcessingStage:
    """Combine the raw signals into exactly one of the five stages.

    An explicit ``failed`` status always wins over flag-based inference.
    """
    if processing_status == ProcessingStage.FAILED.value:
        return ProcessingStage.FAILED
    if has_narratives and has_enrichment and has_entities:
        return ProcessingStage.COMPLETE
    if has_enrichment and has_entities:
        return ProcessingStage.ENRICHING
    if has_entities:
        return ProcessingStage.PARSING
    return ProcessingStage.PENDING


@dataclass
class ProcessingStatus:
    version_id: uuid.UUID
    current_stage: str
    processing_progress: int
    processing_status: str
    has_entities: bool
    has_enrichment: bool
    has_narratives: bool
    is_complete: bool
    last_updated: Optional[datetime]
    processing_stage: ProcessingStage
    processing_error: Optional[str] = None

    @property
    def should_continue_polling(self) -> bool:
        """Whether a caller watching this version should poll again.

        ``failed`` stops immediately. A derived ``complete`` keeps polling
        until the stored status confirms the run finished.
        """
        if self.processing_stage == ProcessingStage.FAILED:
            return False
        return not self.is_complete

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['processing_stage'] = self.processing_stage.value
        data['should_continue_polling'] = self.should_continue_polling
        return data


class ProcessingStateTracker:
    """Writes stage transitions and serves the derived status."""

    def get_processing_status(
        self,
        repo: KnowledgeRepository,
        version_id: Union[str, uuid.UUID]
    ) -> ProcessingStatus:
        vid = parse_uuid(version_id, "version id")
        version = repo.streams.get_version(vid)
        if version is None:
            raise VersionNotFoundError(f"Resume version not found: {vid}")

        has_entities = repo.entities.count_entities(vid) > 0
        has_enrichment = repo.enrichments.has_enrichment(vid)
        has_narratives = repo.enrichments.has_narratives(vid)

        stage = derive_processing_stage(
            version.processing_status, has_entities, has_enrichment, has_narratives
        )

        return ProcessingStatus(
            version_id=version.id,
            current_stage=version.processing_stage or "upload",
            processing_progress=int(clamp(version.processing_progress or 0, 0, 100)),
            processing_status=version.processing_status or ProcessingStage.PENDING.value,
            has_entities=has_entities,
            has_enrichment=has_enrichment,
            has_narratives=has_narratives,
            is_complete=version.processing_status == ProcessingStage.COMPLETE.value,
            last_updated=version.updated_at,
            processing_stage=stage,
            processing_error=version.processing_error
        )

    def mark_stage(
        self,
        repo: KnowledgeRepository,
        version: ResumeVersion,
        status: ProcessingStage,
        current_stage: str,
        progress: int
    ) -> ResumeVersion:
        logger.info(f"Version {version.id}: {current_stage} ({status.value}, {progress}%)")
        return repo.streams.update_processing(
            version, status=status.value, stage=current_stage, progress=progress
        )

    def mark_failed(
        self,
        repo: KnowledgeRepository,
        version: ResumeVersion,
        current_stage: str,
        error: str
    ) -> ResumeVersion:
        logger.error(f"Version {version.id} failed during {current_stage}: {error}")
        return repo.streams.update_processing(
            version, status=ProcessingStage.FAILED.value, stage=current_stage, error=error
        )
