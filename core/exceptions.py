"""
Exception hierarchy for the resume knowledge pipeline.

Validation errors (bad identifiers, rejected uploads, malformed decisions) are
kept distinct from processing failures (collaborator errors) so callers can
tell "you asked for something invalid" apart from "the pipeline failed".
"""


class PipelineError(Exception):
    """Base exception for pipeline errors."""
    pass


class InvalidIdentifierError(PipelineError):
    """Raised when a caller passes a malformed identifier."""

    def __init__(self, kind: str, value):
        self.kind = kind
        self.value = value
        super().__init__(f"Invalid {kind} format: {value!r}. Must be a valid UUID.")


class NotFoundError(PipelineError):
    """Raised when a well-formed identifier does not resolve to a record."""
    pass


class StreamNotFoundError(NotFoundError):
    pass


class VersionNotFoundError(NotFoundError):
    pass


class EntityNotFoundError(NotFoundError):
    pass


class UploadRejectedError(PipelineError):
    """Raised when an upload fails mime type, size, or emptiness checks."""
    pass


class CollaboratorError(PipelineError):
    """Raised when an external AI collaborator call fails."""
    pass


class MalformedResponseError(CollaboratorError):
    """Raised when a collaborator returns output that fails validation."""
    pass


class DecisionValidationError(PipelineError):
    """Raised when a merge decision is not well-formed."""
    pass


class UnknownProfileEntityTypeError(PipelineError):
    """Raised when a decision targets a profile entity type that is not configured."""

    def __init__(self, entity_type: str):
        self.entity_type = entity_type
        super().__init__(f"Unknown profile entity type: {entity_type!r}")


class DeletionError(PipelineError):
    """Raised when a cascading owner deletion cannot complete."""
    pass
