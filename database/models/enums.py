from enum import Enum


class ProcessingStage(str, Enum):
    """Lifecycle position of a resume version."""
    PENDING = "pending"
    PARSING = "parsing"
    ENRICHING = "enriching"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStage.COMPLETE, ProcessingStage.FAILED)


class DiffType(str, Enum):
    IDENTICAL = "identical"
    EQUIVALENT = "equivalent"
    CONFLICTING = "conflicting"
    NEW = "new"


class DecisionType(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    OVERRIDE = "override"


class ProfileSource(str, Enum):
    """Provenance of a confirmed profile entry."""
    MANUAL = "manual"
    MERGE_ACCEPTED = "merge_accepted"
    MERGE_OVERRIDDEN = "merge_overridden"
