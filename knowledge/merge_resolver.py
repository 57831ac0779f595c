"""
Merge Resolver - records decisions on diffs and applies them to the confirmed profile.

Recording and applying are separate steps. Applying walks the version's
decisions oldest first; each decision runs in its own savepoint so one bad
decision is reported in the summary while the others still land.
"""
import logging
import uuid
from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from core.config_loader import ProfileConfig
from core.exceptions import (
    PipelineError,
    DecisionValidationError,
    EntityNotFoundError,
    VersionNotFoundError,
    UnknownProfileEntityTypeError,
)
from core.utils import parse_uuid, field_prefix
from database.models import (
    ConfirmedProfileEntry, MergeDecision, ResumeDiff, ResumeVersion, DecisionType, ProfileSource
)
from database.repository import KnowledgeRepository

logger = logging.getLogger(__name__)

Identifier = Union[str, uuid.UUID]

_RESULT_STATUS = {
    DecisionType.ACCEPT.value: "accepted",
    DecisionType.OVERRIDE.value: "overridden",
    DecisionType.REJECT.value: "rejected",
}


@dataclass
class DecisionResult:
    decision_id: str
    entity_id: str
    field_name: str
    status: str  # accepted|overridden|rejected|error
    applied_value: Optional[str] = None
    profile_entry_id: Optional[str] = None
    diff_resolved: bool = False
    error: Optional[str] = None


@dataclass
class MergeSummary:
    version_id: uuid.UUID
    total_decisions: int = 0
    accepted: int = 0
    rejected: int = 0
    overridden: int = 0
    results: List[DecisionResult] = field(default_factory=list)

    @property
    def errors(self) -> int:
        return sum(1 for r in self.results if r.status == "error")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version_id': str(self.version_id),
            'total_decisions': self.total_decisions,
            'accepted': self.accepted,
            'rejected': self.rejected,
            'overridden': self.overridden,
            'errors': self.errors,
            'results': [asdict(r) for r in self.results],
        }


class MergeResolver:
    def __init__(self, profile_config: ProfileConfig = None):
        self.profile_config = profile_config or ProfileConfig()

    def _owned_version(self, repo: KnowledgeRepository, owner: uuid.UUID, version_id: Identifier) -> ResumeVersion:
        vid = parse_uuid(version_id, "version id")
        version = repo.streams.get_version(vid)
        if version is None or version.owner_id != owner:
            raise VersionNotFoundError(f"Resume version not found: {vid}")
        return version

    # --- Decisions ---

    def record_decision(
        self,
        repo: KnowledgeRepository,
        owner_id: Identifier,
        version_id: Identifier,
        entity_id: Identifier,
        decision_type: str,
        override_value: Optional[str] = None,
        justification: Optional[str] = None,
        profile_entity_id: Optional[str] = None,
        profile_entity_type: Optional[str] = None
    ) -> MergeDecision:
        """Append a decision on the entity's diff.

        The entity's raw value and confidence are snapshotted so the decision
        still means the same thing after a re-extraction. The profile target
        defaults to the profile entry the diff matched, if any.
        """
        owner = parse_uuid(owner_id, "owner id")
        version = self._owned_version(repo, owner, version_id)
        eid = parse_uuid(entity_id, "entity id")

        valid_types = [t.value for t in DecisionType]
        if decision_type not in valid_types:
            raise DecisionValidationError(
                f"Unknown decision type {decision_type!r}; expected one of {', '.join(valid_types)}"
            )
        if decision_type == DecisionType.OVERRIDE.value and not (override_value or "").strip():
            raise DecisionValidationError("An override decision requires an override value")
        if decision_type != DecisionType.OVERRIDE.value and override_value is not None:
            raise DecisionValidationError("Only override decisions may carry an override value")

        entity = repo.entities.get_entity(eid)
        if entity is None or entity.version_id != version.id:
            raise EntityNotFoundError(f"Parsed entity {eid} not found in version {version.id}")

        diff = repo.review.get_diff(version.id, entity.id)

        decision = repo.review.add_decision(
            owner_id=owner,
            version_id=version.id,
            entity_id=entity.id,
            profile_entity_id=profile_entity_id or (diff.profile_entity_id if diff else None),
            profile_entity_type=profile_entity_type or (diff.profile_entity_type if diff else None),
            field_name=entity.field_name,
            decision_type=decision_type,
            parsed_value=entity.raw_value,
            override_value=override_value,
            confidence_score=entity.confidence_score,
            justification=justification
        )
        logger.info(f"Recorded {decision_type} decision {decision.id} for {entity.field_name} (version {version.id})")
        return decision

    def list_decisions(
        self,
        repo: KnowledgeRepository,
        owner_id: Identifier,
        version_id: Identifier
    ) -> List[MergeDecision]:
        """Decisions for the version, newest first."""
        owner = parse_uuid(owner_id, "owner id")
        vid = parse_uuid(version_id, "version id")
        return repo.review.list_decisions(vid, owner, oldest_first=False)

    # --- Applying ---

    def apply_decisions(
        self,
        repo: KnowledgeRepository,
        owner_id: Identifier,
        version_id: Identifier
    ) -> MergeSummary:
        """Apply every recorded decision of (version, owner) to the confirmed profile.

        Returns a summary with one result per decision; a failing decision is
        reported there rather than raised.
        """
        owner = parse_uuid(owner_id, "owner id")
        vid = parse_uuid(version_id, "version id")

        decisions = repo.review.list_decisions(vid, owner, oldest_first=True)
        summary = MergeSummary(version_id=vid, total_decisions=len(decisions))

        logger.info("=" * 60)
        logger.info(f"APPLYING {len(decisions)} merge decisions for version {vid}")

        for decision in decisions:
            try:
                with repo.savepoint():
                    result = self._apply_one(repo, owner, decision)
            except (PipelineError, SQLAlchemyError) as e:
                logger.error(f"Decision {decision.id} ({decision.field_name}) failed: {e}")
                summary.results.append(DecisionResult(
                    decision_id=str(decision.id),
                    entity_id=str(decision.entity_id),
                    field_name=decision.field_name,
                    status="error",
                    error=str(e)
                ))
                continue

            if decision.decision_type == DecisionType.ACCEPT.value:
                summary.accepted += 1
            elif decision.decision_type == DecisionType.OVERRIDE.value:
                summary.overridden += 1
            else:
                summary.rejected += 1
            summary.results.append(result)

        logger.info(
            f"Merge done: {summary.accepted} accepted, {summary.overridden} overridden, "
            f"{summary.rejected} rejected, {summary.errors} errors"
        )
        logger.info("=" * 60)
        return summary

    def _apply_one(self, repo: KnowledgeRepository, owner: uuid.UUID, decision: MergeDecision) -> DecisionResult:
        if decision.decision_type not in _RESULT_STATUS:
            raise DecisionValidationError(f"Unknown decision type {decision.decision_type!r}")

        diff = repo.review.get_diff(decision.version_id, decision.entity_id)
        result = DecisionResult(
            decision_id=str(decision.id),
            entity_id=str(decision.entity_id),
            field_name=decision.field_name,
            status=_RESULT_STATUS[decision.decision_type]
        )

        if decision.decision_type != DecisionType.REJECT.value:
            entry = self._write_profile(repo, owner, decision, diff)
            result.applied_value = entry.confirmed_value
            result.profile_entry_id = str(entry.id)

        resolved = repo.review.mark_resolved(
            decision.version_id,
            decision.entity_id,
            resolved_by=owner,
            resolution_type=decision.decision_type,
            decision_id=decision.id
        )
        result.diff_resolved = resolved is not None
        return result

    def _resolve_entity_type(self, decision: MergeDecision, diff: Optional[ResumeDiff]) -> str:
        entity_type = (
            decision.profile_entity_type
            or (diff.profile_entity_type if diff else None)
            or field_prefix(decision.field_name)
        )
        if entity_type not in self.profile_config.entity_types:
            raise UnknownProfileEntityTypeError(entity_type)
        return entity_type

    def _write_profile(
        self,
        repo: KnowledgeRepository,
        owner: uuid.UUID,
        decision: MergeDecision,
        diff: Optional[ResumeDiff]
    ) -> ConfirmedProfileEntry:
        entity_type = self._resolve_entity_type(decision, diff)
        entity_id = decision.profile_entity_id or str(decision.entity_id)

        if decision.decision_type == DecisionType.OVERRIDE.value:
            value = decision.override_value or decision.parsed_value
            confidence = 1.0  # A human override is maximally trusted
            source = ProfileSource.MERGE_OVERRIDDEN.value
        else:
            value = decision.parsed_value
            confidence = decision.confidence_score
            source = ProfileSource.MERGE_ACCEPTED.value

        return repo.profile.upsert_entry(
            owner_id=owner,
            entity_type=entity_type,
            entity_id=entity_id,
            field_name=decision.field_name,
            confirmed_value=value,
            confidence_score=confidence,
            source=source
        )

    # --- Confirmed profile ---

    def list_confirmed_profile(self, repo: KnowledgeRepository, owner_id: Identifier) -> List[ConfirmedProfileEntry]:
        return repo.profile.list_for_owner(parse_uuid(owner_id, "owner id"))

    def upsert_manual_entry(
        self,
        repo: KnowledgeRepository,
        owner_id: Identifier,
        entity_type: str,
        entity_id: str,
        field_name: str,
        confirmed_value: str
    ) -> ConfirmedProfileEntry:
        """Write a fact the user entered directly."""
        owner = parse_uuid(owner_id, "owner id")
        if entity_type not in self.profile_config.entity_types:
            raise UnknownProfileEntityTypeError(entity_type)
        if not field_name or not entity_id:
            raise DecisionValidationError("Profile entries need an entity id and a field name")

        return repo.profile.upsert_entry(
            owner_id=owner,
            entity_type=entity_type,
            entity_id=entity_id,
            field_name=field_name,
            confirmed_value=confirmed_value,
            confidence_score=1.0,
            source=ProfileSource.MANUAL.value
        )
