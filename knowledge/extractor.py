"""
Entity Extractor - persists the extraction collaborator's output.

The collaborator is called once per run. Its entities replace the version's
whole entity set in a single savepoint, so a failed call or a failed write
leaves the previous set untouched.
"""
import logging
import uuid
from abc import ABC, abstractmethod
from typing import List, Union

from core.exceptions import CollaboratorError, VersionNotFoundError
from core.llm.interfaces import LLMProvider
from core.utils import parse_uuid
from database.models import ParsedEntity
from database.repository import KnowledgeRepository
from knowledge.values import from_extracted

logger = logging.getLogger(__name__)


class DocumentTextReader(ABC):
    """Turns the raw bytes of an uploaded document into text for extraction."""

    @abstractmethod
    def read_text(self, data: bytes, mime_type: str) -> str:
        pass


class Utf8TextReader(DocumentTextReader):
    """Decodes the document as UTF-8 text.

    Binary formats need a reader backed by a real document parser.
    """

    def read_text(self, data: bytes, mime_type: str) -> str:
        text = data.decode('utf-8', errors='replace').strip()
        if not text:
            raise CollaboratorError(f"No text could be read from the {mime_type} document")
        return text


class EntityExtractionService:
    def __init__(self, ai: LLMProvider, text_reader: DocumentTextReader = None):
        self.ai = ai
        self.text_reader = text_reader or Utf8TextReader()

    def extract_version(
        self,
        repo: KnowledgeRepository,
        version_id: Union[str, uuid.UUID],
        data: bytes
    ) -> List[ParsedEntity]:
        """Extract entities from the version's document and replace its entity set.

        Raises:
            InvalidIdentifierError: malformed version id
            VersionNotFoundError: no such version
            CollaboratorError: text reading or the extraction call failed
        """
        vid = parse_uuid(version_id, "version id")
        version = repo.streams.get_version(vid)
        if version is None:
            raise VersionNotFoundError(f"Resume version not found: {vid}")

        text = self.text_reader.read_text(data, version.mime_type)
        extracted = self.ai.extract_resume_entities(text)

        rows = []
        for item in extracted:
            value = from_extracted(item.raw_value)
            rows.append({
                'field_name': item.field_name,
                'raw_value': value.serialize(),
                'value_kind': value.kind,
                'confidence_score': item.confidence,
                'model_version': item.model_version,
                'source_type': 'ai_extraction',
            })

        with repo.savepoint():
            entities = repo.entities.replace_entities(vid, rows)

        logger.info(f"Stored {len(entities)} entities for version {vid}")
        return entities
