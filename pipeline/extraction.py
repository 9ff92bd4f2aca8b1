"""Patient record extraction backed by a generative-text provider.

The provider is selected with ``settings.llm_provider`` (``openai`` or
``gemini``).  Without an API key, or whenever the provider call or the
parsing of its completion fails, the canned sample record is returned instead
so the search stage always has something to work with.
"""

from __future__ import annotations

import importlib
import json
import logging
import re
import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Literal, Tuple

from app.models.schemas import PatientRecord

from .errors import InvalidInputError, LLMProviderError, UpstreamUnavailableError
from .fixtures import FALLBACK_PATIENT_RECORD
from .prompts import build_extraction_prompt

logger = logging.getLogger(__name__)

__all__ = [
    "ExtractionResult",
    "complete",
    "extract_patient_record",
    "fallback_patient_record",
    "parse_patient_record",
]

DEFAULT_MODELS = {"openai": "gpt-3.5-turbo", "gemini": "gemini-1.5-flash"}
RETRY_BASE_DELAY = 1.0

_CODE_FENCE_PATTERN = re.compile(
    r"^```(?:json)?\s*(?P<body>.*?)\s*```$", re.DOTALL | re.IGNORECASE
)


@dataclass(frozen=True)
class ExtractionResult:
    record: PatientRecord
    source: Literal["live", "fallback"]


def fallback_patient_record() -> PatientRecord:
    """Return the documented sample record used whenever extraction degrades."""

    return PatientRecord.model_validate(FALLBACK_PATIENT_RECORD)


def _load_error_types(module_name: str, *class_names: str) -> Tuple[type, ...]:
    try:
        module = importlib.import_module(module_name)
    except ImportError:  # pragma: no cover - optional provider SDK
        return tuple()

    error_types: List[type] = []
    for name in class_names:
        candidate = getattr(module, name, None)
        if isinstance(candidate, type) and issubclass(candidate, BaseException):
            error_types.append(candidate)
    return tuple(error_types)


def _get_openai_error_types() -> Tuple[type, ...]:
    return _load_error_types(
        "openai",
        "APIConnectionError",
        "APITimeoutError",
        "RateLimitError",
        "InternalServerError",
    )


def _get_gemini_error_types() -> Tuple[type, ...]:
    return _load_error_types("google.genai.errors", "ServerError")


def _model_name(settings) -> str:
    provider = settings.llm_provider.lower()
    return settings.llm_model or DEFAULT_MODELS.get(provider, "")


def _call_openai(prompt: str, settings) -> str:
    from openai import OpenAI

    client = OpenAI(
        api_key=settings.llm_api_key, timeout=settings.llm_timeout, max_retries=0
    )
    response = client.chat.completions.create(
        model=_model_name(settings),
        messages=[{"role": "user", "content": prompt}],
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )
    content = response.choices[0].message.content
    return (content or "").strip()


def _call_gemini(prompt: str, settings) -> str:
    from google import genai

    client = genai.Client(
        api_key=settings.llm_api_key,
        http_options={"timeout": int(settings.llm_timeout * 1000)},
    )
    response = client.models.generate_content(
        model=_model_name(settings),
        contents=prompt,
        config={
            "temperature": settings.llm_temperature,
            "max_output_tokens": settings.llm_max_tokens,
        },
    )
    return _extract_gemini_text(response)


def _extract_gemini_text(response: Any) -> str:
    """Return the completion text from a Gemini SDK response object."""

    chunks: List[str] = []
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or []
        if not isinstance(parts, Iterable):
            continue
        for part in parts:
            text = getattr(part, "text", None)
            if text:
                chunks.append(str(text))
    if chunks:
        return "".join(chunks).strip()
    return (getattr(response, "text", None) or "").strip()


_PROVIDERS: Dict[str, Tuple[Callable[[str, Any], str], Callable[[], Tuple[type, ...]]]] = {
    "openai": (_call_openai, _get_openai_error_types),
    "gemini": (_call_gemini, _get_gemini_error_types),
}


def complete(prompt: str, settings) -> str:
    """Send ``prompt`` to the configured provider and return the completion text.

    Transient provider errors are retried with exponential backoff up to
    ``settings.llm_max_attempts`` times.  Every failure surfaces as
    :class:`LLMProviderError`.
    """

    provider = settings.llm_provider.lower()
    if provider not in _PROVIDERS:
        raise LLMProviderError(f"Unsupported LLM provider '{settings.llm_provider}'")

    call, error_types = _PROVIDERS[provider]
    retryable = error_types()
    max_attempts = max(1, settings.llm_max_attempts)
    for attempt in range(1, max_attempts + 1):
        try:
            return call(prompt, settings)
        except Exception as exc:
            logger.warning(
                "%s call failed on attempt %s/%s: %s",
                provider,
                attempt,
                max_attempts,
                exc,
            )
            transient = not retryable or isinstance(exc, retryable)
            if attempt == max_attempts or not transient:
                raise LLMProviderError(f"{provider} provider call failed") from exc
            time.sleep(RETRY_BASE_DELAY * (2 ** (attempt - 1)))

    raise LLMProviderError(f"{provider} provider call failed")  # pragma: no cover


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except RecursionError as exc:
        raise ValueError("Completion JSON is nested too deeply") from exc


def parse_patient_record(text: str) -> PatientRecord:
    """Parse a completion into a :class:`PatientRecord`.

    Raises ``ValueError`` (including ``json.JSONDecodeError`` and pydantic's
    ``ValidationError``) when the text does not hold a usable JSON object.
    """

    cleaned = text.strip()
    fence = _CODE_FENCE_PATTERN.match(cleaned)
    if fence:
        cleaned = fence.group("body")

    try:
        payload = _load_json(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise
        payload = _load_json(cleaned[start : end + 1])

    if not isinstance(payload, dict):
        raise ValueError("Completion JSON is not an object")
    return PatientRecord.model_validate(payload)


def extract_patient_record(transcript: str | None, *, settings) -> ExtractionResult:
    """Return the patient record for ``transcript``.

    Only a missing transcript is reported as an error; provider outages and
    malformed completions fall back to the sample record.
    """

    if transcript is None or not str(transcript).strip():
        raise InvalidInputError("Transcript is required")

    if not settings.llm_api_key:
        logger.info("No LLM API key configured; returning sample patient record")
        return ExtractionResult(fallback_patient_record(), "fallback")

    prompt = build_extraction_prompt(str(transcript))
    try:
        completion = complete(prompt, settings)
    except UpstreamUnavailableError:
        logger.exception("Transcript analysis failed; returning sample patient record")
        return ExtractionResult(fallback_patient_record(), "fallback")

    if not completion:
        logger.error("LLM returned an empty completion; returning sample patient record")
        return ExtractionResult(fallback_patient_record(), "fallback")

    try:
        record = parse_patient_record(completion)
    except (ValueError, RecursionError):
        logger.exception(
            "LLM completion is not a valid patient record; returning sample patient record"
        )
        return ExtractionResult(fallback_patient_record(), "fallback")

    return ExtractionResult(record, "live")
