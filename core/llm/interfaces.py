"""
LLM Provider Interface - Abstract base for AI service providers.

This module defines the interface the resume pipeline needs from a
completion service (OpenAI, Ollama, Anthropic, etc.).
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Any

from core.llm.schema_models import (
    ExtractedEntity,
    EnrichmentResponse,
    ComparisonResponse,
    NarrativeResponse,
)


class LLMProvider(ABC):
    """
    Abstract Interface for AI Service Providers (OpenAI, Ollama, Anthropic, etc.).

    Every method either returns a validated response model or raises
    CollaboratorError (MalformedResponseError when the output does not parse).
    """

    @abstractmethod
    def extract_resume_entities(self, text: str) -> List[ExtractedEntity]:
        """
        Extract the flattened (field, value, confidence) entities of a resume.
        """
        pass

    @abstractmethod
    def enrich_entity(self, field_name: str, value_text: str) -> EnrichmentResponse:
        """
        Analyse a single resume entry.
        """
        pass

    @abstractmethod
    def compare_values(self, text_a: str, text_b: str) -> ComparisonResponse:
        """
        Classify a parsed value (text_a) against a confirmed profile value (text_b).
        """
        pass

    @abstractmethod
    def generate_career_narratives(self, entities: List[Dict[str, Any]]) -> NarrativeResponse:
        """
        Write the whole-resume narratives from a version's entities.

        Args:
            entities: dicts with ``field_name`` and ``value`` keys
        """
        pass

    @property
    @abstractmethod
    def model_names(self) -> Dict[str, str]:
        """
        Model identifier used for each operation, recorded with the results.
        """
        pass
