"""
Semantic Diff Engine - classifies parsed entities against the confirmed profile.

For each entity of a version:
1. Candidate profile entries are those whose entity type equals the entity's
   field-name prefix, or whose field name contains the entity's field name
   (case-insensitive). No candidate means the fact is ``new``.
2. The first candidate is compared through the semantic comparison
   collaborator. When it is down or answers with garbage, a deterministic
   string comparison is used instead so analysis never stalls.
3. The result is upserted as the one live diff for (version, entity).
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from core.config_loader import PipelineConfig
from core.exceptions import VersionNotFoundError
from core.llm.interfaces import LLMProvider
from core.llm.schema_models import ComparisonResponse
from core.utils import parse_uuid, field_prefix
from database.models import ParsedEntity, ConfirmedProfileEntry, ResumeDiff, DiffType, utcnow
from database.repository import KnowledgeRepository
from knowledge.batch import run_isolated
from knowledge.values import from_stored

logger = logging.getLogger(__name__)


def find_candidates(
    field_name: str,
    profile_entries: List[ConfirmedProfileEntry]
) -> List[ConfirmedProfileEntry]:
    """Profile entries that could describe the same fact as ``field_name``."""
    prefix = field_prefix(field_name)
    lowered = field_name.lower()
    return [
        p for p in profile_entries
        if p.entity_type == prefix or lowered in (p.field_name or "").lower()
    ]


def fallback_compare(text_a: str, text_b: str) -> ComparisonResponse:
    """Deterministic comparison used when the comparison collaborator is unavailable."""
    a = (text_a or "").lower()
    b = (text_b or "").lower()

    if a == b:
        return ComparisonResponse(
            diff_type=DiffType.IDENTICAL.value,
            similarity_score=1.0,
            justification="Exact text match found",
            requires_review=False
        )
    if a in b or b in a:
        return ComparisonResponse(
            diff_type=DiffType.EQUIVALENT.value,
            similarity_score=0.8,
            justification="Partial text match found - likely equivalent",
            requires_review=False
        )
    return ComparisonResponse(
        diff_type=DiffType.CONFLICTING.value,
        similarity_score=0.3,
        justification="Different values found - requires review",
        requires_review=True
    )


@dataclass(frozen=True)
class _Comparison:
    entity_id: uuid.UUID
    parsed_text: str
    confirmed_text: str


@dataclass
class DiffSummary:
    version_id: uuid.UUID
    total: int = 0
    identical: int = 0
    equivalent: int = 0
    conflicting: int = 0
    new: int = 0
    requires_review: int = 0
    fallbacks: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def count(self, diff: ResumeDiff) -> None:
        self.total += 1
        setattr(self, diff.diff_type, getattr(self, diff.diff_type) + 1)
        if diff.requires_review:
            self.requires_review += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version_id': str(self.version_id),
            'total': self.total,
            'identical': self.identical,
            'equivalent': self.equivalent,
            'conflicting': self.conflicting,
            'new': self.new,
            'requires_review': self.requires_review,
            'fallbacks': self.fallbacks,
            'errors': self.errors,
        }


class SemanticDiffEngine:
    def __init__(self, ai: LLMProvider, config: PipelineConfig = None):
        self.ai = ai
        self.config = config or PipelineConfig()

    def _compare(self, comparison: _Comparison) -> ComparisonResponse:
        return self.ai.compare_values(comparison.parsed_text, comparison.confirmed_text)

    def analyze_version(
        self,
        repo: KnowledgeRepository,
        version_id: Union[str, uuid.UUID]
    ) -> DiffSummary:
        """Classify every entity of the version and upsert one diff per entity."""
        vid = parse_uuid(version_id, "version id")
        version = repo.streams.get_version(vid)
        if version is None:
            raise VersionNotFoundError(f"Resume version not found: {vid}")

        entities = repo.entities.list_entities(vid)
        profile = repo.profile.list_for_owner(version.owner_id)
        summary = DiffSummary(version_id=vid)

        logger.info("=" * 60)
        logger.info(f"DIFF ANALYSIS version {vid}: {len(entities)} entities, {len(profile)} profile entries")

        matches = {e.id: find_candidates(e.field_name, profile) for e in entities}
        comparisons = [
            _Comparison(
                entity_id=e.id,
                parsed_text=from_stored(e.raw_value, e.value_kind).as_text(),
                confirmed_text=matches[e.id][0].confirmed_value
            )
            for e in entities if matches[e.id]
        ]
        compared = {
            r.item.entity_id: r
            for r in run_isolated(self._compare, comparisons, max_workers=self.config.max_workers)
        }

        for entity in entities:
            candidates = matches[entity.id]
            if candidates:
                result = compared[entity.id]
                if result.ok:
                    response, method = result.value, "ai"
                else:
                    logger.warning(f"Comparison unavailable for entity {entity.id}, using fallback: {result.error}")
                    response, method = fallback_compare(result.item.parsed_text, result.item.confirmed_text), "fallback"
                    summary.fallbacks += 1
                data = self._matched(entity, candidates, response, method)
            else:
                data = self._unmatched(entity)

            try:
                with repo.savepoint():
                    diff = repo.review.upsert_diff(vid, entity.id, data)
                summary.count(diff)
            except SQLAlchemyError as e:
                logger.error(f"Failed to store diff for entity {entity.id}: {e}")
                summary.errors.append({'entity_id': str(entity.id), 'field_name': entity.field_name, 'error': str(e)})

        logger.info(
            f"Diff analysis done: {summary.total} diffs "
            f"({summary.new} new, {summary.conflicting} conflicting, {summary.requires_review} need review)"
        )
        logger.info("=" * 60)
        return summary

    def _unmatched(self, entity: ParsedEntity) -> Dict[str, Any]:
        return {
            'profile_entity_id': None,
            'profile_entity_type': None,
            'diff_type': DiffType.NEW.value,
            'similarity_score': 0.0,
            'confidence_score': entity.confidence_score,
            'justification': "New entity from resume not found in confirmed profile",
            'requires_review': False,
            'metadata': self._metadata(entity, candidate_count=0),
        }

    def _matched(
        self,
        entity: ParsedEntity,
        candidates: List[ConfirmedProfileEntry],
        response: ComparisonResponse,
        method: str
    ) -> Dict[str, Any]:
        target = candidates[0]
        requires_review = response.requires_review
        justification = response.justification

        # Only the first candidate was compared; a human has to check the rest
        if len(candidates) > 1:
            requires_review = True
            justification = f"{justification} ({len(candidates)} profile entries matched; compared the first)"

        return {
            'profile_entity_id': target.entity_id,
            'profile_entity_type': target.entity_type,
            'diff_type': response.diff_type,
            'similarity_score': response.similarity_score,
            'confidence_score': entity.confidence_score,
            'justification': justification,
            'requires_review': requires_review,
            'metadata': self._metadata(
                entity,
                candidate_count=len(candidates),
                comparison_method=method,
                profile_field_name=target.field_name
            ),
        }

    @staticmethod
    def _metadata(entity: ParsedEntity, candidate_count: int, **extra) -> Dict[str, Any]:
        metadata = {
            'entity_field': entity.field_name,
            'analysis_timestamp': utcnow().isoformat(),
            'candidate_count': candidate_count,
        }
        metadata.update({k: v for k, v in extra.items() if v is not None})
        return metadata

    def list_diffs(self, repo: KnowledgeRepository, version_id: Union[str, uuid.UUID]) -> List[ResumeDiff]:
        return repo.review.list_diffs(parse_uuid(version_id, "version id"))

    def list_pending_review(
        self,
        repo: KnowledgeRepository,
        version_id: Union[str, uuid.UUID]
    ) -> List[ResumeDiff]:
        return repo.review.list_pending_review(parse_uuid(version_id, "version id"))
