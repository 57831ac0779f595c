"""
Extracted entity values.

An extracted value is either free text or an embedded structured document
(a JSON object or array). Downstream consumers (diff engine, enrichment) work
only on the text projection.
"""
import json
from dataclasses import dataclass
from typing import Any, Union

TEXT_KIND = "text"
STRUCTURED_KIND = "structured"


@dataclass(frozen=True)
class TextValue:
    text: str

    kind = TEXT_KIND

    def as_text(self) -> str:
        return self.text

    def serialize(self) -> str:
        return self.text


@dataclass(frozen=True)
class StructuredValue:
    document: Union[dict, list]

    kind = STRUCTURED_KIND

    def as_text(self) -> str:
        return json.dumps(self.document, sort_keys=True, ensure_ascii=False)

    def serialize(self) -> str:
        return json.dumps(self.document, ensure_ascii=False)


EntityValue = Union[TextValue, StructuredValue]


def from_extracted(value: Any) -> EntityValue:
    """Wrap a value as returned by the extraction collaborator."""
    if isinstance(value, (dict, list)):
        return StructuredValue(value)
    if value is None:
        return TextValue("")
    return TextValue(str(value))


def from_stored(raw_value: str, kind: str) -> EntityValue:
    """Rebuild a value from its stored (raw_value, value_kind) pair.

    A stored ``structured`` value that no longer parses degrades to text
    rather than failing the read.
    """
    if kind == STRUCTURED_KIND:
        try:
            document = json.loads(raw_value)
        except (TypeError, ValueError):
            return TextValue(raw_value or "")
        if isinstance(document, (dict, list)):
            return StructuredValue(document)
    return TextValue(raw_value or "")
