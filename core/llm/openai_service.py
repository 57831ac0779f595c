"""
OpenAI Service - LLM implementation using OpenAI API.

Provides resume entity extraction, per-entry enrichment, semantic value
comparison and career narratives, all through JSON Schema structured output.
"""
from typing import Dict, Any, List, Optional, Tuple, Type
import json
import logging
import copy
import re

import openai
from openai import OpenAI
from pydantic import BaseModel, ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity import RetryCallState

from core.config_loader import LlmConfig
from core.exceptions import CollaboratorError, MalformedResponseError
from core.llm.interfaces import LLMProvider
from core.llm.system_prompts import (
    RESUME_EXTRACTION_SYSTEM_PROMPT,
    ENRICHMENT_SYSTEM_PROMPT,
    COMPARISON_SYSTEM_PROMPT,
    NARRATIVE_SYSTEM_PROMPT,
)
from core.llm.schema_models import (
    RESUME_EXTRACTION_SCHEMA,
    ENRICHMENT_SCHEMA,
    COMPARISON_SCHEMA,
    NARRATIVE_SCHEMA,
    ResumeExtraction,
    ExtractedEntity,
    EnrichmentResponse,
    ComparisonResponse,
    NarrativeResponse,
)

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (
    openai.RateLimitError,
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.InternalServerError,
)


# ---------------------------------------------------------------------------
# Retry helpers
# ---------------------------------------------------------------------------

def _log_retry(retry_state: RetryCallState) -> None:
    """Log a warning before each retry sleep, including Retry-After info."""
    exc = retry_state.outcome.exception()
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    if isinstance(exc, openai.RateLimitError):
        logger.warning(
            "Rate limit hit (attempt %s). Waiting %.1fs before retry. Details: %s",
            retry_state.attempt_number, wait, exc,
        )
    else:
        logger.warning(
            "Transient API error (attempt %s). Waiting %.1fs before retry. Details: %s",
            retry_state.attempt_number, wait, exc,
        )


def _parse_reset_duration(value: str) -> float:
    """Parse an OpenAI reset-timer header value like '1s', '500ms', '1m30s' into seconds."""
    total = 0.0
    for amount, unit in re.findall(r"([\d.]+)(ms|s|m|h)", value):
        a = float(amount)
        if unit == "ms":
            total += a / 1000
        elif unit == "s":
            total += a
        elif unit == "m":
            total += a * 60
        else:  # h
            total += a * 3600
    return total


def _wait_from_rate_limit_headers(exc: openai.RateLimitError) -> float:
    """Extract the longest declared wait from rate-limit response headers.

    Reads (taking the maximum):
      - ``retry-after``                standard HTTP, plain seconds
      - ``x-ratelimit-reset-requests`` OpenAI request-quota reset duration
      - ``x-ratelimit-reset-tokens``   OpenAI token-quota reset duration

    Returns 0.0 if no usable header is present.
    """
    headers = getattr(getattr(exc, "response", None), "headers", None)
    if not headers:
        return 0.0

    candidates: List[float] = []

    retry_after = headers.get("retry-after", "")
    if retry_after:
        try:
            candidates.append(float(retry_after))
        except ValueError:
            logger.debug(f"Ignoring non-numeric retry-after header: {retry_after!r}")

    for header in ("x-ratelimit-reset-requests", "x-ratelimit-reset-tokens"):
        parsed = _parse_reset_duration(headers.get(header, ""))
        if parsed > 0:
            candidates.append(parsed)

    return max(candidates) if candidates else 0.0


def _wait_respecting_retry_after(retry_state: RetryCallState) -> float:
    """Return how long tenacity should sleep before the next attempt.

    For ``RateLimitError``: honours server-declared timers via response headers.
    For all other retryable errors: falls back to capped exponential backoff.
    """
    exc = retry_state.outcome.exception()
    if isinstance(exc, openai.RateLimitError):
        wait = _wait_from_rate_limit_headers(exc)
        if wait > 0:
            wait = min(wait, 120)  # safety cap at 2 min
            logger.info("Rate limit headers indicate %.1fs wait.", wait)
            return wait

    # Fallback: exponential backoff 2 -> 4 -> 8 ... capped at 60s
    exp = wait_exponential(multiplier=1, min=2, max=60)
    return exp(retry_state)


def _llm_retry(attempts: int = 5):
    """Return a tenacity @retry decorator for LLM API calls."""
    return retry(
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        wait=_wait_respecting_retry_after,
        stop=stop_after_attempt(max(1, attempts)),
        before_sleep=_log_retry,
        reraise=True,
    )


def _unwrap_schema_spec(spec: Dict[str, Any]) -> Tuple[str, bool, Dict[str, Any]]:
    """Unwrap a schema spec to extract name, strict flag, and raw JSON schema.

    Args:
        spec: Either a wrapped spec {'name': str, 'strict': bool, 'schema': {...}}
              or a raw JSON schema dict

    Returns:
        Tuple of (name, strict, raw_schema)
    """
    if isinstance(spec, dict) and "schema" in spec and "name" in spec:
        return spec.get("name", "extraction_response"), bool(spec.get("strict", False)), spec["schema"]
    return "extraction_response", False, spec


def _validate(model: Type[BaseModel], data: Dict[str, Any]):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(
            f"Response does not match {model.__name__}: {e.error_count()} validation error(s)"
        ) from e


class OpenAIService(LLMProvider):
    """
    OpenAI LLM Service.

    Structured output via JSON Schema mode. Transient API errors are retried
    with backoff; anything still failing surfaces as CollaboratorError, and
    output that does not parse or validate as MalformedResponseError.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        config: Optional[LlmConfig] = None
    ):
        self.config = config or LlmConfig()

        client_kwargs = {'timeout': self.config.request_timeout_seconds}
        api_key = api_key or self.config.api_key
        base_url = base_url or self.config.base_url
        if api_key:
            client_kwargs['api_key'] = api_key
        if base_url:
            client_kwargs['base_url'] = base_url

        self.client = OpenAI(**client_kwargs)
        self._create_completion = _llm_retry(self.config.max_retries)(self._create_completion_once)

    @property
    def model_names(self) -> Dict[str, str]:
        return {
            'extraction': self.config.extraction_model,
            'enrichment': self.config.enrichment_model,
            'comparison': self.config.comparison_model,
            'narrative': self.config.narrative_model,
        }

    def _create_completion_once(self, **kwargs):
        return self.client.chat.completions.create(**kwargs)

    def extract_structured_data(
        self,
        schema_spec: Dict,
        system_prompt: str,
        user_message: str,
        model: str,
        temperature: float
    ) -> Dict[str, Any]:
        """Request a completion constrained to a JSON schema and parse it.

        Args:
            schema_spec: Either a wrapped spec {'name', 'strict', 'schema'} or raw JSON schema
            system_prompt: System instructions for the task
            user_message: The content to analyse
            model: Model identifier
            temperature: Sampling temperature
        """
        name, strict, raw_schema = _unwrap_schema_spec(schema_spec)
        runtime_schema = copy.deepcopy(raw_schema)

        if runtime_schema.get("type") != "object" or "properties" not in runtime_schema:
            raise ValueError(f"Not a valid JSON Schema object. Top-level keys: {list(runtime_schema.keys())}")

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ]

        try:
            response = self._create_completion(
                model=model,
                messages=messages,
                temperature=temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": name,
                        "schema": runtime_schema,
                        "strict": strict,
                    },
                },
            )
        except openai.OpenAIError as e:
            logger.error(f"{name} request to {model} failed: {e}")
            raise CollaboratorError(f"{name} request failed: {e}") from e

        try:
            content = response.choices[0].message.content
            data = json.loads(content)
        except (json.JSONDecodeError, TypeError, IndexError, AttributeError) as e:
            logger.error(f"Failed to parse {name} response: {e}")
            raise MalformedResponseError(f"Unparseable {name} response: {e}") from e

        if not isinstance(data, dict):
            raise MalformedResponseError(f"Expected a JSON object for {name}, got {type(data).__name__}")

        return data

    def extract_resume_entities(self, text: str) -> List[ExtractedEntity]:
        """Extract resume facts and flatten them into dotted-field entities.

        Args:
            text: Resume text to extract from

        Returns:
            Entities with the per-section extraction confidence
        """
        data = self.extract_structured_data(
            RESUME_EXTRACTION_SCHEMA,
            system_prompt=RESUME_EXTRACTION_SYSTEM_PROMPT,
            user_message=f"Extract the structured resume data following the schema.\n\nResume:\n{text}",
            model=self.config.extraction_model,
            temperature=self.config.extraction_temperature
        )
        extraction = _validate(ResumeExtraction, data)
        entities = extraction.to_entities(model_version=self.config.extraction_model)

        logger.info("=" * 60)
        logger.info(f"RESUME EXTRACTION ({self.config.extraction_model}):")
        logger.info("-" * 60)
        logger.info(
            f"Extracted {len(entities)} entities "
            f"({len(extraction.work_experience)} experience entries, {len(extraction.skills)} skills)"
        )
        logger.info("=" * 60)

        return entities

    def enrich_entity(self, field_name: str, value_text: str) -> EnrichmentResponse:
        data = self.extract_structured_data(
            ENRICHMENT_SCHEMA,
            system_prompt=ENRICHMENT_SYSTEM_PROMPT,
            user_message=(
                f"Analyze this resume entry.\n\n"
                f"<FIELD>{field_name}</FIELD>\n"
                f"<CONTENT>\n{value_text}\n</CONTENT>"
            ),
            model=self.config.enrichment_model,
            temperature=self.config.enrichment_temperature
        )
        return _validate(EnrichmentResponse, data)

    def compare_values(self, text_a: str, text_b: str) -> ComparisonResponse:
        data = self.extract_structured_data(
            COMPARISON_SCHEMA,
            system_prompt=COMPARISON_SYSTEM_PROMPT,
            user_message=(
                f"<PARSED_VALUE>\n{text_a}\n</PARSED_VALUE>\n"
                f"<CONFIRMED_VALUE>\n{text_b}\n</CONFIRMED_VALUE>\n\n"
                f"Classify the parsed value against the confirmed value."
            ),
            model=self.config.comparison_model,
            temperature=self.config.comparison_temperature
        )
        return _validate(ComparisonResponse, data)

    def generate_career_narratives(self, entities: List[Dict[str, Any]]) -> NarrativeResponse:
        facts = "\n".join(f"{e['field_name']}: {e['value']}" for e in entities)
        data = self.extract_structured_data(
            NARRATIVE_SCHEMA,
            system_prompt=NARRATIVE_SYSTEM_PROMPT,
            user_message=f"<RESUME_FACTS>\n{facts}\n</RESUME_FACTS>\n\nWrite the three career narratives.",
            model=self.config.narrative_model,
            temperature=self.config.narrative_temperature
        )
        return _validate(NarrativeResponse, data)
