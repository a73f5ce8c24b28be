"""
Service helpers for enqueuing section jobs.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Protocol

from briefing.models.report import SectionName, SectionStatus, utc_now_iso
from briefing.schemas.report import DispatchAllResult, DispatchResult, SectionJob
from briefing.services.input_hash import build_section_input_hash
from briefing.services.pipeline import check_prerequisites, independent_sections
from briefing.services.section_store import SectionStore

logger = logging.getLogger(__name__)


class JobQueue(Protocol):
    def enqueue_job(self, payload: Dict[str, Any]) -> str: ...


class SectionDispatcher:
    """Mark sections in progress and queue the jobs that compute them."""

    def __init__(self, store: SectionStore, queue: JobQueue) -> None:
        self._store = store
        self._queue = queue

    def dispatch(
        self, report_id: str, section: SectionName, *, force: bool = False
    ) -> DispatchResult:
        """Queue ``section`` unless its stored result already matches the inputs.

        Raises ``ReportNotFound`` and ``PrerequisitesNotMet`` before writing anything.
        """
        report = self._store.get_report(report_id)
        check_prerequisites(report, section)
        input_hash = build_section_input_hash(report_id, section, report.source_text_keys)

        record = report.section(section)
        if (
            not force
            and record.status is SectionStatus.COMPLETE
            and record.input_hash == input_hash
        ):
            logger.info("Section %s/%s is up to date; reusing", report_id, section.value)
            return DispatchResult(
                section=section,
                status=SectionStatus.COMPLETE,
                enqueued=False,
                reused=True,
                input_hash=input_hash,
            )

        self._store.mark_in_progress(report_id, section, input_hash)
        job = self._build_job(report_id=report_id, section=section, input_hash=input_hash)
        try:
            message_id = self._queue.enqueue_job(job.to_message())
        except Exception as exc:
            logger.exception("Failed to enqueue %s/%s", report_id, section.value)
            self._store.mark_failed(report_id, section, exc)
            raise

        logger.info(
            "Enqueued section %s/%s", report_id, section.value, extra={"message_id": message_id}
        )
        return DispatchResult(
            section=section,
            status=SectionStatus.IN_PROGRESS,
            enqueued=True,
            input_hash=input_hash,
            message_id=message_id,
        )

    def dispatch_all(self, report_id: str, *, force: bool = False) -> DispatchAllResult:
        """Dispatch every section without prerequisites; dependents follow on completion."""
        results: List[DispatchResult] = [
            self.dispatch(report_id, section, force=force)
            for section in independent_sections()
        ]
        return DispatchAllResult(report_id=report_id, results=results)

    @staticmethod
    def _build_job(*, report_id: str, section: SectionName, input_hash: str) -> SectionJob:
        return SectionJob(
            report_id=report_id,
            section=section,
            input_hash=input_hash,
            attempt=1,
            requested_at=utc_now_iso(),
        )


__all__ = ["JobQueue", "SectionDispatcher"]
