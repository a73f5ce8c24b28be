try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from briefing.core.errors import PrerequisitesNotMet, ReportNotFound
from briefing.models.report import SectionName, SectionStatus, report_key
from briefing.services.input_hash import build_section_input_hash
from briefing.services.section_dispatcher import SectionDispatcher


class RecordingQueue:
    def __init__(self) -> None:
        self.messages: list[dict] = []

    def enqueue_job(self, payload: dict) -> str:
        self.messages.append(payload)
        return f"msg-{len(self.messages)}"


class FailingQueue:
    def enqueue_job(self, payload: dict) -> str:
        raise RuntimeError("queue down")


@pytest.fixture
def queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
def dispatcher(section_store, queue) -> SectionDispatcher:
    return SectionDispatcher(store=section_store, queue=queue)


def _complete_prerequisites(section_store, report_id: str) -> None:
    for section in (
        SectionName.SUMMARY,
        SectionName.DEADLINES,
        SectionName.REQUIREMENTS,
        SectionName.CONTACTS,
        SectionName.RISKS,
    ):
        section_store.mark_complete(report_id, section, {"section": section.value})


def test_dispatch_marks_in_progress_and_enqueues(dispatcher, queue, document_store, make_report) -> None:
    make_report("r1", ["docs/a.txt"])

    result = dispatcher.dispatch("r1", SectionName.SUMMARY)

    expected_hash = build_section_input_hash("r1", SectionName.SUMMARY, ["docs/a.txt"])
    assert result.status is SectionStatus.IN_PROGRESS
    assert result.enqueued is True
    assert result.reused is False
    assert result.input_hash == expected_hash
    assert result.message_id == "msg-1"

    record = document_store.get_item(report_key("r1"))["sections"]["summary"]
    assert record["status"] == "IN_PROGRESS"
    assert record["inputHash"] == expected_hash

    [message] = queue.messages
    assert message["reportId"] == "r1"
    assert message["section"] == "summary"
    assert message["inputHash"] == expected_hash
    assert message["attempt"] == 1
    assert message["requestedAt"]


def test_missing_report_is_rejected(dispatcher, queue) -> None:
    with pytest.raises(ReportNotFound):
        dispatcher.dispatch("ghost", SectionName.SUMMARY)
    assert queue.messages == []


def test_scoring_waits_for_prerequisites(dispatcher, queue, document_store, make_report) -> None:
    make_report("r1")
    before = document_store.get_item(report_key("r1"))

    with pytest.raises(PrerequisitesNotMet) as excinfo:
        dispatcher.dispatch("r1", SectionName.SCORING)

    assert excinfo.value.missing == ["summary", "deadlines", "requirements", "contacts", "risks"]
    assert document_store.get_item(report_key("r1")) == before
    assert queue.messages == []


def test_scoring_dispatches_once_prerequisites_complete(
    dispatcher, queue, section_store, make_report
) -> None:
    make_report("r1")
    _complete_prerequisites(section_store, "r1")

    result = dispatcher.dispatch("r1", SectionName.SCORING)
    assert result.enqueued is True
    assert queue.messages[0]["section"] == "scoring"


def test_complete_section_with_same_inputs_is_reused(
    dispatcher, queue, section_store, make_report
) -> None:
    make_report("r1")
    first = dispatcher.dispatch("r1", SectionName.RISKS)
    section_store.mark_complete("r1", SectionName.RISKS, {"risks": []})

    reused = dispatcher.dispatch("r1", SectionName.RISKS)
    assert reused.status is SectionStatus.COMPLETE
    assert reused.enqueued is False
    assert reused.reused is True
    assert reused.input_hash == first.input_hash
    assert len(queue.messages) == 1

    forced = dispatcher.dispatch("r1", SectionName.RISKS, force=True)
    assert forced.enqueued is True
    assert len(queue.messages) == 2
    assert section_store.get_report("r1").section_status(SectionName.RISKS) is SectionStatus.IN_PROGRESS


def test_complete_section_with_stale_hash_is_recomputed(
    dispatcher, queue, section_store, make_report
) -> None:
    make_report("r1")
    section_store.mark_in_progress("r1", SectionName.CONTACTS, "hash-from-old-documents")
    section_store.mark_complete("r1", SectionName.CONTACTS, {"contacts": []})

    result = dispatcher.dispatch("r1", SectionName.CONTACTS)
    assert result.enqueued is True
    assert len(queue.messages) == 1


def test_enqueue_failure_marks_section_failed(section_store, document_store, make_report) -> None:
    make_report("r1")
    dispatcher = SectionDispatcher(store=section_store, queue=FailingQueue())

    with pytest.raises(RuntimeError):
        dispatcher.dispatch("r1", SectionName.DEADLINES)

    record = document_store.get_item(report_key("r1"))["sections"]["deadlines"]
    assert record["status"] == "FAILED"
    assert record["error"] == "RuntimeError: queue down"


def test_dispatch_all_skips_dependent_sections(dispatcher, queue, make_report) -> None:
    make_report("r1")

    result = dispatcher.dispatch_all("r1")

    assert [item.section for item in result.results] == [
        SectionName.SUMMARY,
        SectionName.DEADLINES,
        SectionName.REQUIREMENTS,
        SectionName.CONTACTS,
        SectionName.RISKS,
    ]
    assert sorted(message["section"] for message in queue.messages) == [
        "contacts",
        "deadlines",
        "requirements",
        "risks",
        "summary",
    ]
