import hashlib
import logging
import uuid
from typing import Any, Union

from core.exceptions import InvalidIdentifierError

logger = logging.getLogger(__name__)


def parse_uuid(value: Union[str, uuid.UUID, Any], kind: str = "id") -> uuid.UUID:
    """Validate and normalise an identifier before it reaches the store.

    Rejects placeholders such as ``":versionId"``, ``"undefined"`` and
    ``"null"`` along with anything that is not a UUID.

    Args:
        value: Identifier supplied by the caller
        kind: Human-readable identifier name used in the error message

    Returns:
        The identifier as a uuid.UUID

    Raises:
        InvalidIdentifierError: If the value is not a valid UUID
    """
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str):
        raise InvalidIdentifierError(kind, value)

    candidate = value.strip()
    if not candidate or candidate.startswith(':') or candidate in ('undefined', 'null', 'None'):
        raise InvalidIdentifierError(kind, value)

    try:
        return uuid.UUID(candidate)
    except ValueError:
        raise InvalidIdentifierError(kind, value)


def generate_file_fingerprint(file_bytes: bytes) -> str:
    """
    Generate a fingerprint for an uploaded document based on raw file bytes.

    Same file = same hash regardless of name or mime type.

    Args:
        file_bytes: Raw bytes of the uploaded file

    Returns:
        Hex SHA-256 digest of the file bytes
    """
    return hashlib.sha256(file_bytes).hexdigest()


def field_prefix(field_name: str) -> str:
    """Return the entity-type prefix of a dotted field name.

    ``work_experience.0.title`` -> ``work_experience``
    """
    return (field_name or "").split('.', 1)[0]


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
