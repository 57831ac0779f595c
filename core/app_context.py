from dataclasses import dataclass

from core.config_loader import AppConfig, LlmConfig
from core.llm.interfaces import LLMProvider
from core.llm.openai_service import OpenAIService
from knowledge.diff_engine import SemanticDiffEngine
from knowledge.document_store import DocumentStore
from knowledge.enrichment import EnrichmentService
from knowledge.extractor import EntityExtractionService, DocumentTextReader, Utf8TextReader
from knowledge.merge_resolver import MergeResolver
from knowledge.orchestrator import VersionProcessor
from knowledge.processing_status import ProcessingStateTracker


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    Services are stateless with respect to the database: every operation
    takes the KnowledgeRepository of the caller's knowledge_uow(). The
    processor takes the knowledge_uow factory itself and commits per stage.
    """
    config: AppConfig
    ai_service: LLMProvider
    document_store: DocumentStore
    tracker: ProcessingStateTracker
    extractor: EntityExtractionService
    enrichment: EnrichmentService
    diff_engine: SemanticDiffEngine
    merge_resolver: MergeResolver
    processor: VersionProcessor

    @classmethod
    def build(
        cls,
        config: AppConfig,
        ai_service: LLMProvider = None,
        text_reader: DocumentTextReader = None
    ) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration
            ai_service: Completion service override (defaults to OpenAI from config.llm)
            text_reader: Document text reader override (defaults to UTF-8 decoding)

        Returns:
            Fully wired AppContext instance (no DB session attached)
        """
        ai_service = ai_service or cls._build_ai_service(config.llm)
        tracker = ProcessingStateTracker()

        extractor = EntityExtractionService(ai_service, text_reader or Utf8TextReader())
        enrichment = EnrichmentService(ai_service, config.pipeline)
        diff_engine = SemanticDiffEngine(ai_service, config.pipeline)

        return cls(
            config=config,
            ai_service=ai_service,
            document_store=DocumentStore(config.pipeline),
            tracker=tracker,
            extractor=extractor,
            enrichment=enrichment,
            diff_engine=diff_engine,
            merge_resolver=MergeResolver(config.profile),
            processor=VersionProcessor(extractor, enrichment, diff_engine, tracker)
        )

    @staticmethod
    def _build_ai_service(llm_config: LlmConfig) -> OpenAIService:
        """Build OpenAI service from LLM configuration."""
        return OpenAIService(
            api_key=llm_config.api_key,
            base_url=llm_config.base_url,
            config=llm_config
        )
