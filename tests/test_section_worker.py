try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import asyncio
import json

import pytest

from brief_agents.section_worker import handler
from brief_agents.section_worker.handler import SectionWorker
from brief_agents.section_worker.tools import SectionTools
from briefing.clients.gemini import GeminiModelError
from briefing.models.report import SectionName, report_key
from briefing.schemas.report import SectionJob
from briefing.services.input_hash import build_section_input_hash
from briefing.services.model_invoker import ModelInvoker
from briefing.services.section_dispatcher import SectionDispatcher
from briefing.services.source_text import SourceTextLoader

SOURCE_KEY = "docs/rfp.txt"
LONG_TEXT = "Section C: The contractor shall migrate 40 legacy applications to the cloud. " * 5

SECTION_OUTPUTS = {
    "summary": {
        "title": "Cloud Migration Support",
        "summary": "The agency seeks cloud migration support services.",
    },
    "deadlines": {
        "deadlines": [{"label": "Proposals due", "dateTimeIso": "2026-01-15T17:00:00Z"}],
        "submissionDeadlineIso": "2026-01-15T17:00:00Z",
    },
    "requirements": {
        "overview": "Migrate legacy workloads to a FedRAMP cloud.",
        "requirements": [{"category": "TECHNICAL", "requirement": "FedRAMP Moderate ATO"}],
    },
    "contacts": {"contacts": [{"role": "CONTRACTING_OFFICER", "name": "Pat Lee"}]},
    "risks": {"risks": [{"severity": "HIGH", "flag": "Aggressive transition timeline"}]},
    "scoring": {
        "criteria": [{"name": "Technical fit", "score": 4}, {"name": "Past performance", "score": 3}],
        "recommendation": "GO",
        "confidence": 72,
    },
}


class SectionAwareModelClient:
    """Answer with the canned JSON for whichever section the prompt asks for."""

    def __init__(self, failures: dict[str, Exception] | None = None) -> None:
        self.calls: list[dict] = []
        self._failures = failures or {}

    async def generate(self, **kwargs):
        self.calls.append(kwargs)
        section = kwargs["user_content"].rsplit("Return the ", 1)[1].split(" JSON", 1)[0]
        if section in self._failures:
            raise self._failures[section]
        return json.dumps(SECTION_OUTPUTS[section])

    def sections_called(self) -> list[str]:
        return [
            call["user_content"].rsplit("Return the ", 1)[1].split(" JSON", 1)[0]
            for call in self.calls
        ]


class DictObjectStore:
    def __init__(self, objects: dict[str, str]) -> None:
        self._objects = objects

    def get_text(self, key: str) -> str:
        return self._objects[key]


class RecordingQueue:
    def __init__(self) -> None:
        self.messages: list[dict] = []

    def enqueue_job(self, payload: dict) -> str:
        self.messages.append(payload)
        return f"msg-{len(self.messages)}"


class Harness:
    def __init__(
        self, section_store, source_text: str = LONG_TEXT, failures=None, tools_cls=SectionTools
    ) -> None:
        self.store = section_store
        self.queue = RecordingQueue()
        self.client = SectionAwareModelClient(failures)
        self.dispatcher = SectionDispatcher(store=section_store, queue=self.queue)
        tools = tools_cls(
            store=section_store,
            source_loader=SourceTextLoader(
                DictObjectStore({SOURCE_KEY: source_text}), max_chars=45000, min_chars=100
            ),
            invoker=ModelInvoker(self.client, output_retries=0),
            model_name="gemini-test",
        )
        self.worker = SectionWorker(tools, self.dispatcher, auto_dispatch_dependents=True)

    def record(self, index: int, message_id: str | None = None) -> dict:
        return {
            "messageId": message_id or f"m{index}",
            "body": json.dumps(self.queue.messages[index]),
            "attributes": {"ApproximateReceiveCount": "1"},
        }


def _manual_record(message_id: str, report_id: str, section: SectionName) -> dict:
    job = SectionJob(
        report_id=report_id,
        section=section,
        input_hash=build_section_input_hash(report_id, section, [SOURCE_KEY]),
    )
    return {"messageId": message_id, "body": json.dumps(job.to_message())}


@pytest.mark.asyncio
async def test_job_completes_section(section_store, document_store, make_report) -> None:
    make_report("r1", [SOURCE_KEY])
    harness = Harness(section_store)
    harness.dispatcher.dispatch("r1", SectionName.DEADLINES)

    response = await harness.worker.process_records([harness.record(0)])

    assert response == {"batchItemFailures": []}
    stored = document_store.get_item(report_key("r1"))
    record = stored["sections"]["deadlines"]
    assert record["status"] == "COMPLETE"
    assert record["data"]["hasSubmissionDeadline"] is True
    assert "error" not in record
    assert stored["status"] == "IDLE"
    call = harness.client.calls[0]
    assert call["max_output_tokens"] == 4000
    assert call["temperature"] == 0.1
    assert LONG_TEXT in call["user_content"]


@pytest.mark.asyncio
async def test_redelivered_job_is_skipped(section_store, make_report) -> None:
    make_report("r1", [SOURCE_KEY])
    harness = Harness(section_store)
    harness.dispatcher.dispatch("r1", SectionName.SUMMARY)

    await harness.worker.process_records([harness.record(0)])
    response = await harness.worker.process_records([harness.record(0)])

    assert response == {"batchItemFailures": []}
    assert harness.client.sections_called() == ["summary"]


@pytest.mark.asyncio
async def test_gated_section_is_acknowledged_without_writes(
    section_store, document_store, make_report
) -> None:
    make_report("r1", [SOURCE_KEY])
    harness = Harness(section_store)
    before = document_store.get_item(report_key("r1"))

    response = await harness.worker.process_records(
        [_manual_record("m1", "r1", SectionName.SCORING)]
    )

    assert response == {"batchItemFailures": []}
    assert document_store.get_item(report_key("r1")) == before
    assert harness.client.calls == []


@pytest.mark.asyncio
async def test_short_source_fails_before_model_call(
    section_store, document_store, make_report
) -> None:
    make_report("r1", [SOURCE_KEY])
    harness = Harness(section_store, source_text="Too short to analyze at all...")
    harness.dispatcher.dispatch("r1", SectionName.SUMMARY)

    response = await harness.worker.process_records([harness.record(0)])

    assert response == {"batchItemFailures": [{"itemIdentifier": "m0"}]}
    record = document_store.get_item(report_key("r1"))["sections"]["summary"]
    assert record["status"] == "FAILED"
    assert record["error"].startswith("SourceTextTooShort:")
    assert harness.client.calls == []


@pytest.mark.asyncio
async def test_model_failure_is_recorded(section_store, document_store, make_report) -> None:
    make_report("r1", [SOURCE_KEY])
    harness = Harness(section_store, failures={"contacts": GeminiModelError("quota exceeded")})
    harness.dispatcher.dispatch("r1", SectionName.CONTACTS)

    response = await harness.worker.process_records([harness.record(0)])

    assert response == {"batchItemFailures": [{"itemIdentifier": "m0"}]}
    record = document_store.get_item(report_key("r1"))["sections"]["contacts"]
    assert record["status"] == "FAILED"
    assert record["error"] == "ModelInvocationFailed: quota exceeded"


@pytest.mark.asyncio
async def test_batch_failures_are_reported_per_record(section_store, document_store, make_report) -> None:
    make_report("r1", [SOURCE_KEY])
    harness = Harness(section_store)
    harness.dispatcher.dispatch("r1", SectionName.SUMMARY)

    response = await harness.worker.process_records(
        [
            harness.record(0, "good"),
            {"messageId": "garbled", "body": "not json"},
            _manual_record("orphan", "ghost", SectionName.SUMMARY),
        ]
    )

    assert response == {"batchItemFailures": [{"itemIdentifier": "garbled"}]}
    stored = document_store.get_item(report_key("r1"))
    assert stored["sections"]["summary"]["status"] == "COMPLETE"
    assert document_store.get_item(report_key("ghost")) is None


@pytest.mark.asyncio
async def test_completing_last_prerequisite_dispatches_scoring(
    section_store, document_store, make_report
) -> None:
    make_report("r1", [SOURCE_KEY])
    harness = Harness(section_store)
    for section in (
        SectionName.SUMMARY,
        SectionName.DEADLINES,
        SectionName.REQUIREMENTS,
        SectionName.CONTACTS,
    ):
        section_store.mark_complete("r1", section, SECTION_OUTPUTS[section.value])
    harness.dispatcher.dispatch("r1", SectionName.RISKS)

    await harness.worker.process_records([harness.record(0)])

    assert [message["section"] for message in harness.queue.messages] == ["risks", "scoring"]
    stored = document_store.get_item(report_key("r1"))
    assert stored["sections"]["scoring"]["status"] == "IN_PROGRESS"

    response = await harness.worker.process_records([harness.record(1)])

    assert response == {"batchItemFailures": []}
    stored = document_store.get_item(report_key("r1"))
    scoring = stored["sections"]["scoring"]
    assert scoring["status"] == "COMPLETE"
    assert scoring["data"]["compositeScore"] == 3.5
    assert stored["status"] == "COMPLETE"
    assert stored["compositeScore"] == 3.5
    assert stored["recommendation"] == "GO"
    assert stored["decision"] == "GO"
    assert stored["confidence"] == 72
    scoring_prompt = harness.client.calls[-1]["user_content"]
    assert "### RISKS ANALYSIS" in scoring_prompt
    assert "Aggressive transition timeline" in scoring_prompt
    assert len(harness.queue.messages) == 2


class LockstepSectionTools(SectionTools):
    """Hold every completion write until two workers have reached it."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._arrived = 0
        self._both_arrived = asyncio.Event()

    async def mark_complete(self, *args, **kwargs) -> None:
        self._arrived += 1
        if self._arrived == 2:
            self._both_arrived.set()
        await asyncio.wait_for(self._both_arrived.wait(), timeout=5)
        await super().mark_complete(*args, **kwargs)


@pytest.mark.asyncio
async def test_concurrent_last_prerequisites_still_dispatch_scoring(
    section_store, document_store, make_report
) -> None:
    make_report("r1", [SOURCE_KEY])
    harness = Harness(section_store, tools_cls=LockstepSectionTools)
    for section in (SectionName.SUMMARY, SectionName.DEADLINES, SectionName.REQUIREMENTS):
        section_store.mark_complete("r1", section, SECTION_OUTPUTS[section.value])
    harness.dispatcher.dispatch("r1", SectionName.CONTACTS)
    harness.dispatcher.dispatch("r1", SectionName.RISKS)

    response = await harness.worker.process_records([harness.record(0), harness.record(1)])

    assert response == {"batchItemFailures": []}
    sections = document_store.get_item(report_key("r1"))["sections"]
    for name in ("summary", "deadlines", "requirements", "contacts", "risks"):
        assert sections[name]["status"] == "COMPLETE"
    assert "scoring" in [message["section"] for message in harness.queue.messages]
    assert sections["scoring"]["status"] == "IN_PROGRESS"


def test_lambda_handler_delegates_to_worker(monkeypatch) -> None:
    class StubWorker:
        def __init__(self) -> None:
            self.records = None

        async def process_records(self, records):
            self.records = records
            return {"batchItemFailures": [{"itemIdentifier": "m2"}]}

    stub = StubWorker()
    monkeypatch.setattr(handler, "get_section_worker", lambda: stub)

    event = {"Records": [{"messageId": "m1", "body": "{}"}, {"messageId": "m2", "body": "{}"}]}
    assert handler.lambda_handler(event, None) == {"batchItemFailures": [{"itemIdentifier": "m2"}]}
    assert len(stub.records) == 2


def test_lambda_handler_ignores_empty_events(monkeypatch) -> None:
    def _unexpected():
        raise AssertionError("worker should not be built")

    monkeypatch.setattr(handler, "get_section_worker", _unexpected)
    assert handler.lambda_handler({"Records": []}, None) == {"batchItemFailures": []}
