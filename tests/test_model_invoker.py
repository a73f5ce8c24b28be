try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from types import SimpleNamespace

import pytest

from briefing.clients.gemini import GeminiModelError
from briefing.core.errors import (
    ModelInvocationFailed,
    ModelOutputNotJSON,
    ModelOutputSchemaInvalid,
    ModelOutputTruncated,
)
from briefing.schemas.sections import QuickSummary, RisksSection, normalize_risks
from briefing.services.model_invoker import ModelInvoker, response_text

VALID_SUMMARY = '{"title": "Cloud Support", "summary": "The agency needs cloud migration support."}'


class ScriptedModelClient:
    def __init__(self, responses: list) -> None:
        self._responses = list(responses)
        self.calls: list[dict] = []

    async def generate(self, **kwargs):
        self.calls.append(kwargs)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


async def _invoke(invoker: ModelInvoker, *, max_tokens: int = 1200, **overrides):
    arguments = {
        "model_id": "gemini-test",
        "system": "system prompt",
        "user": "user prompt",
        "output_schema": QuickSummary,
        "max_tokens": max_tokens,
        "temperature": 0.2,
    }
    arguments.update(overrides)
    return await invoker.invoke_json(**arguments)


@pytest.mark.asyncio
async def test_valid_output_is_validated_and_dumped_with_aliases() -> None:
    client = ScriptedModelClient([f"```json\n{VALID_SUMMARY}\n```"])
    data = await _invoke(ModelInvoker(client))

    assert data == {
        "title": "Cloud Support",
        "summary": "The agency needs cloud migration support.",
        "contractType": "UNKNOWN",
        "setAside": "UNKNOWN",
        "evidence": [],
    }
    call = client.calls[0]
    assert call["model_name"] == "gemini-test"
    assert call["system_instruction"] == "system prompt"
    assert call["user_content"] == "user prompt"
    assert call["max_output_tokens"] == 1200
    assert call["temperature"] == 0.2


@pytest.mark.asyncio
async def test_output_without_json_is_retried_with_same_limits() -> None:
    client = ScriptedModelClient(["I cannot comply.", VALID_SUMMARY])
    data = await _invoke(ModelInvoker(client, output_retries=1))

    assert data["title"] == "Cloud Support"
    assert [call["max_output_tokens"] for call in client.calls] == [1200, 1200]


@pytest.mark.asyncio
async def test_truncated_output_is_retried_with_doubled_budget() -> None:
    client = ScriptedModelClient(['{"summary": tru', VALID_SUMMARY])
    await _invoke(ModelInvoker(client, output_retries=1))

    assert [call["max_output_tokens"] for call in client.calls] == [1200, 2400]


@pytest.mark.asyncio
async def test_doubled_budget_is_capped() -> None:
    client = ScriptedModelClient(['{"summary": tru', '{"summary": tru'])
    with pytest.raises(ModelOutputTruncated):
        await _invoke(ModelInvoker(client, output_retries=1), max_tokens=5000)

    assert [call["max_output_tokens"] for call in client.calls] == [5000, 8192]


@pytest.mark.asyncio
async def test_retries_are_bounded_by_configuration() -> None:
    client = ScriptedModelClient(["nope"])
    with pytest.raises(ModelOutputNotJSON):
        await _invoke(ModelInvoker(client, output_retries=0))
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_schema_violation_is_not_retried_and_keeps_raw_output() -> None:
    raw = '{"title": "Missing the summary"}'
    client = ScriptedModelClient([raw, VALID_SUMMARY])

    with pytest.raises(ModelOutputSchemaInvalid) as excinfo:
        await _invoke(ModelInvoker(client, output_retries=3))

    assert excinfo.value.raw_output == raw
    assert "summary" in str(excinfo.value)
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_client_errors_become_invocation_failures() -> None:
    client = ScriptedModelClient([GeminiModelError("quota exceeded"), VALID_SUMMARY])

    with pytest.raises(ModelInvocationFailed) as excinfo:
        await _invoke(ModelInvoker(client, output_retries=3))

    assert "quota exceeded" in str(excinfo.value)
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_normalizer_runs_after_validation() -> None:
    raw = (
        '{"risks": [{"severity": "CRITICAL", "flag": "No incumbent data"},'
        ' {"severity": "LOW", "flag": "Minor formatting rules", "impactsScore": true}]}'
    )
    client = ScriptedModelClient([raw])
    data = await _invoke(
        ModelInvoker(client),
        output_schema=RisksSection,
        normalizer=normalize_risks,
    )

    assert [risk["impactsScore"] for risk in data["risks"]] == [True, True]
    assert data["redFlags"] == []


def test_response_text_unwraps_envelopes() -> None:
    gemini_like = SimpleNamespace(
        candidates=[
            SimpleNamespace(
                content=SimpleNamespace(parts=[SimpleNamespace(text='{"a":'), SimpleNamespace(text="1}")])
            )
        ]
    )
    assert response_text(gemini_like) == '{"a":\n1}'
    assert response_text({"candidates": [{"content": {"parts": [{"text": "x"}]}}]}) == "x"
    assert response_text({"content": [{"type": "text", "text": "y"}]}) == "y"
    assert response_text({"text": "z"}) == "z"
    assert response_text(SimpleNamespace(text="plain")) == "plain"
    assert response_text("raw") == "raw"
    assert response_text(None) == ""


def test_response_text_tolerates_sdk_text_errors() -> None:
    class BlockedResponse:
        candidates: list = []

        @property
        def text(self) -> str:
            raise ValueError("no text parts")

    assert response_text(BlockedResponse()) == ""
