"""
Enrichment Cache - per-entity AI analysis.

An entity is sent to the enrichment collaborator at most once unless a
refresh is forced. Batches only enrich entities that have no enrichment yet.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Dict, Any, Union

from sqlalchemy.exc import SQLAlchemyError

from core.config_loader import PipelineConfig
from core.exceptions import EntityNotFoundError, VersionNotFoundError
from core.llm.interfaces import LLMProvider
from core.llm.schema_models import EnrichmentResponse
from core.utils import parse_uuid
from database.models import ParsedEntity, EntryEnrichment, CareerNarrative, utcnow
from database.repository import KnowledgeRepository
from knowledge.batch import run_isolated
from knowledge.values import from_stored

logger = logging.getLogger(__name__)

DEFAULT_ENRICHMENT_CONFIDENCE = 0.8
NARRATIVE_CONFIDENCE = 0.9


@dataclass
class EnrichmentOutcome:
    enrichment: EntryEnrichment
    was_cached: bool


@dataclass
class EnrichmentBatchSummary:
    version_id: uuid.UUID
    total_entities: int = 0
    already_enriched: int = 0
    enriched: int = 0
    failures: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version_id': str(self.version_id),
            'total_entities': self.total_entities,
            'already_enriched': self.already_enriched,
            'enriched': self.enriched,
            'failed': self.failed,
            'failures': self.failures,
        }


@dataclass(frozen=True)
class _EnrichmentRequest:
    # Plain values only: worker threads never touch ORM objects
    entity_id: uuid.UUID
    field_name: str
    value_text: str


class EnrichmentService:
    def __init__(self, ai: LLMProvider, config: PipelineConfig = None):
        self.ai = ai
        self.config = config or PipelineConfig()

    def _request_for(self, entity: ParsedEntity) -> _EnrichmentRequest:
        return _EnrichmentRequest(
            entity_id=entity.id,
            field_name=entity.field_name,
            value_text=from_stored(entity.raw_value, entity.value_kind).as_text()
        )

    def _call(self, request: _EnrichmentRequest) -> EnrichmentResponse:
        return self.ai.enrich_entity(request.field_name, request.value_text)

    def _to_record(self, entity: ParsedEntity, response: EnrichmentResponse) -> Dict[str, Any]:
        confidence = response.confidence_score
        return {
            'insights': list(response.insights),
            'skills_identified': list(response.skills_identified),
            'experience_level': response.experience_level,
            'career_progression': response.career_progression,
            'market_relevance': response.market_relevance,
            'recommendations': list(response.recommendations),
            'parsed_structure': response.parsed_structure,
            'confidence_score': confidence if confidence is not None else DEFAULT_ENRICHMENT_CONFIDENCE,
            'model_version': self.ai.model_names.get('enrichment'),
            'enrichment_metadata': {
                'field_name': entity.field_name,
                'enriched_at': utcnow().isoformat(),
                'source_confidence': entity.confidence_score,
            },
        }

    def _get_entity(self, repo: KnowledgeRepository, entity_id: Union[str, uuid.UUID]) -> ParsedEntity:
        eid = parse_uuid(entity_id, "entity id")
        entity = repo.entities.get_entity(eid)
        if entity is None:
            raise EntityNotFoundError(f"Parsed entity not found: {eid}")
        return entity

    def _owner_of(self, repo: KnowledgeRepository, version_id: uuid.UUID) -> uuid.UUID:
        version = repo.streams.get_version(version_id)
        if version is None:
            raise VersionNotFoundError(f"Resume version not found: {version_id}")
        return version.owner_id

    def enrich_entity(
        self,
        repo: KnowledgeRepository,
        entity_id: Union[str, uuid.UUID],
        force_refresh: bool = False
    ) -> EnrichmentOutcome:
        """Return the entity's enrichment, calling the collaborator only on a miss or a forced refresh.

        A forced refresh updates the existing row in place. A collaborator
        failure (including a malformed response) propagates as CollaboratorError.
        """
        entity = self._get_entity(repo, entity_id)

        existing = repo.enrichments.get_for_entity(entity.id)
        if existing is not None and not force_refresh:
            logger.debug(f"Enrichment cache hit for entity {entity.id}")
            return EnrichmentOutcome(enrichment=existing, was_cached=True)

        owner_id = self._owner_of(repo, entity.version_id)
        response = self._call(self._request_for(entity))
        record = repo.enrichments.upsert_enrichment(entity, owner_id, self._to_record(entity, response))

        logger.info(f"Enriched entity {entity.id} ({entity.field_name}){' [refresh]' if existing else ''}")
        return EnrichmentOutcome(enrichment=record, was_cached=False)

    def enrich_all_for_version(
        self,
        repo: KnowledgeRepository,
        version_id: Union[str, uuid.UUID]
    ) -> EnrichmentBatchSummary:
        """Enrich every entity of the version that has no enrichment yet.

        Collaborator calls run on a bounded pool; results are written back on
        the caller's session, each in its own savepoint. Per-entity failures
        are collected in the summary and never abort the batch.
        """
        vid = parse_uuid(version_id, "version id")
        owner_id = self._owner_of(repo, vid)

        entities = repo.entities.list_entities(vid)
        done = repo.enrichments.enriched_entity_ids(vid)
        pending = [e for e in entities if e.id not in done]
        by_id = {e.id: e for e in pending}

        summary = EnrichmentBatchSummary(
            version_id=vid,
            total_entities=len(entities),
            already_enriched=len(entities) - len(pending)
        )

        logger.info("=" * 60)
        logger.info(f"ENRICHING version {vid}: {len(pending)} of {len(entities)} entities pending")

        requests = [self._request_for(e) for e in pending]
        results = run_isolated(self._call, requests, max_workers=self.config.max_workers)

        for result in results:
            entity = by_id[result.item.entity_id]
            if not result.ok:
                logger.error(f"Enrichment failed for entity {entity.id} ({entity.field_name}): {result.error}")
                summary.failures.append(self._failure(entity, result.error))
                continue
            try:
                with repo.savepoint():
                    repo.enrichments.upsert_enrichment(entity, owner_id, self._to_record(entity, result.value))
                summary.enriched += 1
            except SQLAlchemyError as e:
                logger.error(f"Failed to store enrichment for entity {entity.id}: {e}")
                summary.failures.append(self._failure(entity, e))

        logger.info(f"Enrichment done: {summary.enriched} enriched, {summary.failed} failed")
        logger.info("=" * 60)
        return summary

    @staticmethod
    def _failure(entity: ParsedEntity, error: Exception) -> Dict[str, Any]:
        return {
            'entity_id': str(entity.id),
            'field_name': entity.field_name,
            'error': str(error),
        }

    def generate_narratives(
        self,
        repo: KnowledgeRepository,
        version_id: Union[str, uuid.UUID]
    ) -> List[CareerNarrative]:
        """(Re)generate the version's career narratives from its entities."""
        vid = parse_uuid(version_id, "version id")
        owner_id = self._owner_of(repo, vid)

        facts = [
            {'field_name': e.field_name, 'value': from_stored(e.raw_value, e.value_kind).as_text()}
            for e in repo.entities.list_entities(vid)
        ]
        if not facts:
            logger.warning(f"No entities for version {vid}; skipping narratives")
            return []

        response = self.ai.generate_career_narratives(facts)
        records = response.as_records(self.ai.model_names.get('narrative'), NARRATIVE_CONFIDENCE)

        with repo.savepoint():
            narratives = repo.enrichments.replace_narratives(vid, owner_id, records)

        logger.info(f"Stored {len(narratives)} career narratives for version {vid}")
        return narratives
