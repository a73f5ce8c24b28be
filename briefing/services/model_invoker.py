"""Invoke the text model and turn its reply into a validated section payload."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Type

from pydantic import ValidationError

from briefing.clients.gemini import GeminiModelError
from briefing.core.errors import (
    ModelInvocationFailed,
    ModelOutputNotJSON,
    ModelOutputSchemaInvalid,
    ModelOutputTruncated,
)
from briefing.schemas.sections import SectionPayload, dump_payload
from briefing.services.json_extraction import extract_json

logger = logging.getLogger(__name__)

Normalizer = Callable[[Dict[str, Any]], Dict[str, Any]]

# Upper bound on output tokens when a truncated reply is retried with a larger budget.
MAX_OUTPUT_TOKENS_CEILING = 8192


class TextModelClient(Protocol):
    async def generate(
        self,
        *,
        model_name: Optional[str],
        system_instruction: str,
        user_content: str,
        max_output_tokens: int,
        temperature: float,
    ) -> Any: ...


def response_text(response: Any) -> str:
    """Collect the text parts of a model response envelope."""
    if response is None:
        return ""
    if isinstance(response, str):
        return response
    if isinstance(response, dict):
        return _text_from_mapping(response)

    candidates = getattr(response, "candidates", None)
    if candidates:
        texts: List[str] = []
        for candidate in candidates:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                text = getattr(part, "text", None)
                if text:
                    texts.append(text)
        if texts:
            return "\n".join(texts)
    try:
        text = getattr(response, "text", None)
    except ValueError:
        # The SDK raises when the candidate carries no text parts.
        return ""
    return text if isinstance(text, str) else ""


def _text_from_mapping(envelope: Dict[str, Any]) -> str:
    texts: List[str] = []
    for candidate in envelope.get("candidates") or []:
        for part in (candidate.get("content") or {}).get("parts") or []:
            if isinstance(part, dict) and part.get("text"):
                texts.append(part["text"])
    content = envelope.get("content")
    if isinstance(content, list):
        for block in content:
            if isinstance(block, dict) and block.get("text"):
                texts.append(block["text"])
    if not texts and isinstance(envelope.get("text"), str):
        texts.append(envelope["text"])
    return "\n".join(texts)


def validate_payload(
    value: Any,
    schema: Type[SectionPayload],
    *,
    raw_output: str,
    normalizer: Optional[Normalizer] = None,
) -> Dict[str, Any]:
    try:
        model = schema.model_validate(value)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in error['loc']) or '<root>'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ModelOutputSchemaInvalid(
            f"Model output failed {schema.__name__} validation: {problems}",
            raw_output=raw_output,
        ) from exc
    data = dump_payload(model)
    return normalizer(data) if normalizer is not None else data


class ModelInvoker:
    """Call the model, extract JSON, validate, and normalize.

    Malformed replies are retried in-process: a reply with no JSON is retried
    as-is, a truncated reply with twice the output budget. Schema violations and
    endpoint failures surface immediately.
    """

    def __init__(self, client: TextModelClient, *, output_retries: int = 1) -> None:
        self._client = client
        self._output_retries = max(0, output_retries)

    async def invoke_json(
        self,
        *,
        model_id: Optional[str],
        system: str,
        user: str,
        output_schema: Type[SectionPayload],
        max_tokens: int,
        temperature: float,
        normalizer: Optional[Normalizer] = None,
    ) -> Dict[str, Any]:
        budget = max_tokens
        attempts = self._output_retries + 1
        for attempt in range(1, attempts + 1):
            raw = await self._generate(
                model_id=model_id,
                system=system,
                user=user,
                max_tokens=budget,
                temperature=temperature,
            )
            try:
                value = extract_json(raw, expect=dict)
            except ModelOutputNotJSON:
                if attempt == attempts:
                    raise
                logger.warning(
                    "Model reply contained no JSON (attempt %d/%d); retrying",
                    attempt,
                    attempts,
                )
                continue
            except ModelOutputTruncated:
                if attempt == attempts:
                    raise
                budget = min(budget * 2, MAX_OUTPUT_TOKENS_CEILING)
                logger.warning(
                    "Model reply was truncated (attempt %d/%d); retrying with max_tokens=%d",
                    attempt,
                    attempts,
                    budget,
                )
                continue
            return validate_payload(
                value, output_schema, raw_output=raw, normalizer=normalizer
            )
        raise ModelOutputNotJSON("Model produced no usable output")

    async def _generate(
        self,
        *,
        model_id: Optional[str],
        system: str,
        user: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        try:
            response = await self._client.generate(
                model_name=model_id,
                system_instruction=system,
                user_content=user,
                max_output_tokens=max_tokens,
                temperature=temperature,
            )
        except GeminiModelError as exc:
            raise ModelInvocationFailed(str(exc)) from exc
        return response_text(response)


__all__ = [
    "MAX_OUTPUT_TOKENS_CEILING",
    "ModelInvoker",
    "Normalizer",
    "TextModelClient",
    "response_text",
    "validate_payload",
]
