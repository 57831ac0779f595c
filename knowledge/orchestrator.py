"""
Pipeline orchestration for a single resume version.

Runs extract -> enrich -> narratives -> diff analysis. Each stage gets two
units of work: one that commits the stage marker and progress, so pollers
see where the run is, and one that commits the stage's output. A failing
stage rolls back its own unit of work, the version is marked ``failed``
with the error text in a fresh one, and the run stops without raising.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Union, Callable, ContextManager

from core.exceptions import PipelineError, VersionNotFoundError
from core.utils import parse_uuid
from database.models import ProcessingStage, ResumeVersion
from database.repository import KnowledgeRepository
from knowledge.diff_engine import SemanticDiffEngine
from knowledge.enrichment import EnrichmentService
from knowledge.extractor import EntityExtractionService
from knowledge.processing_status import ProcessingStateTracker, ProcessingStatus

logger = logging.getLogger(__name__)

# Zero-argument factory such as database.uow.knowledge_uow
UnitOfWork = Callable[[], ContextManager[KnowledgeRepository]]


@dataclass
class ProcessingReport:
    version_id: uuid.UUID
    status: ProcessingStatus
    entities: int = 0
    enrichment: Optional[Dict[str, Any]] = None
    narratives: int = 0
    diffs: Optional[Dict[str, Any]] = None
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    warnings: list = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


class VersionProcessor:
    def __init__(
        self,
        extractor: EntityExtractionService,
        enrichment: EnrichmentService,
        diff_engine: SemanticDiffEngine,
        tracker: ProcessingStateTracker = None
    ):
        self.extractor = extractor
        self.enrichment = enrichment
        self.diff_engine = diff_engine
        self.tracker = tracker or ProcessingStateTracker()

    def _stages(self):
        """(stage name, stored status, progress when it starts, runner)."""
        return [
            ("extraction", ProcessingStage.PARSING, 10, self._extract),
            ("enrichment", ProcessingStage.ENRICHING, 40, self._enrich),
            ("narratives", ProcessingStage.ENRICHING, 70, self._narrate),
            ("analysis", ProcessingStage.ENRICHING, 90, self._analyze),
        ]

    def process_version(
        self,
        uow: UnitOfWork,
        version_id: Union[str, uuid.UUID],
        data: bytes
    ) -> ProcessingReport:
        """Run every stage for the version, committing as it goes.

        Invalid or unknown version ids raise; everything after that is
        reported through the returned report and the version's stored state.
        """
        vid = parse_uuid(version_id, "version id")
        with uow() as repo:
            label = self._load(repo, vid).file_name

        report = ProcessingReport(version_id=vid, status=None)

        logger.info("=" * 60)
        logger.info(f"PROCESSING version {vid} ({label or 'unnamed upload'})")
        logger.info("=" * 60)

        for stage, status, progress, run in self._stages():
            with uow() as repo:
                self.tracker.mark_stage(repo, self._load(repo, vid), status, stage, progress)

            try:
                with uow() as repo:
                    run(repo, vid, data, report)
            except Exception as e:
                if not isinstance(e, PipelineError):
                    logger.exception(f"Unexpected error during {stage} of version {vid}")
                report.failed_stage = stage
                report.error = str(e) or e.__class__.__name__
                with uow() as repo:
                    self.tracker.mark_failed(repo, self._load(repo, vid), stage, report.error)
                break
        else:
            with uow() as repo:
                self.tracker.mark_stage(repo, self._load(repo, vid), ProcessingStage.COMPLETE, "complete", 100)

        with uow() as repo:
            report.status = self.tracker.get_processing_status(repo, vid)
        return report

    @staticmethod
    def _load(repo: KnowledgeRepository, vid: uuid.UUID) -> ResumeVersion:
        version = repo.streams.get_version(vid)
        if version is None:
            raise VersionNotFoundError(f"Resume version not found: {vid}")
        return version

    def _extract(self, repo, vid, data, report):
        report.entities = len(self.extractor.extract_version(repo, vid, data))

    def _enrich(self, repo, vid, data, report):
        batch = self.enrichment.enrich_all_for_version(repo, vid)
        report.enrichment = batch.to_dict()
        if batch.failed:
            report.warnings.append(f"{batch.failed} entities could not be enriched")

    def _narrate(self, repo, vid, data, report):
        report.narratives = len(self.enrichment.generate_narratives(repo, vid))

    def _analyze(self, repo, vid, data, report):
        report.diffs = self.diff_engine.analyze_version(repo, vid).to_dict()
