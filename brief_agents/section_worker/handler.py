"""
AWS Lambda entrypoint for processing section jobs.

The queue's event source mapping must enable ``ReportBatchItemFailures``: only
the records listed in ``batchItemFailures`` are redelivered.
"""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from briefing.core.config import get_settings
from briefing.core.errors import ReportNotFound, SectionPipelineError
from briefing.core.logging import configure_logging
from briefing.models.report import SectionName
from briefing.dependencies.clients import (
    get_model_invoker,
    get_section_dispatcher,
    get_section_store,
    get_source_text_loader,
)
from briefing.services import SectionDispatcher
from brief_agents.section_worker.graph import create_section_graph
from brief_agents.section_worker.models import SectionJob, SectionState
from brief_agents.section_worker.tools import SectionTools

logger = logging.getLogger(__name__)


class SectionWorker:
    """Run the section graph for each queue record and report partial failures."""

    def __init__(
        self,
        tools: SectionTools,
        dispatcher: Optional[SectionDispatcher] = None,
        *,
        auto_dispatch_dependents: bool = True,
    ) -> None:
        self._tools = tools
        self._graph = create_section_graph(tools)
        self._dispatcher = dispatcher
        self._auto_dispatch = auto_dispatch_dependents and dispatcher is not None

    async def process_records(self, records: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
        """Process records independently; return the SQS partial batch response."""
        batch = list(records)
        outcomes = await asyncio.gather(*(self._process_record(record) for record in batch))
        failures = [
            {"itemIdentifier": record.get("messageId")}
            for record, succeeded in zip(batch, outcomes)
            if not succeeded
        ]
        return {"batchItemFailures": failures}

    async def _process_record(self, record: Dict[str, Any]) -> bool:
        message_id = record.get("messageId")
        body = record.get("body")
        try:
            job = SectionJob.model_validate_json(body or "")
        except ValidationError as exc:
            logger.error(
                "Rejecting malformed section job: %s", exc, extra={"message_id": message_id}
            )
            return False

        receive_count = _receive_count(record)
        logger.info(
            "Starting section job %s/%s (attempt %d)",
            job.report_id,
            job.section.value,
            max(job.attempt, receive_count),
            extra={"message_id": message_id},
        )
        try:
            await self.process_job(job)
        except SectionPipelineError as exc:
            if exc.retryable:
                return await self._fail(job, exc, message_id)
            # Acknowledge without touching the store.
            logger.warning(
                "Dropping section job %s/%s: %s",
                job.report_id,
                job.section.value,
                exc,
                extra={"message_id": message_id},
            )
            return True
        except Exception as exc:
            return await self._fail(job, exc, message_id)
        return True

    async def _fail(self, job: SectionJob, error: Exception, message_id: Any) -> bool:
        logger.error(
            "Section job %s/%s failed: %s",
            job.report_id,
            job.section.value,
            error,
            exc_info=error,
            extra={"message_id": message_id},
        )
        await self._record_failure(job, error)
        return False

    async def process_job(self, job: SectionJob) -> SectionState:
        """Run the graph for one job, then dispatch sections it unblocked."""
        final_state: SectionState = await self._graph.ainvoke({"job": job})
        if final_state.get("skipped"):
            return final_state

        logger.info("Completed section job %s/%s", job.report_id, job.section.value)
        if self._auto_dispatch:
            for section in final_state.get("unblocked", []):
                await self._dispatch_dependent(job.report_id, section)
        return final_state

    async def _dispatch_dependent(self, report_id: str, section: SectionName) -> None:
        if self._dispatcher is None:
            return
        try:
            await asyncio.to_thread(self._dispatcher.dispatch, report_id, section)
        except Exception:
            # The completed section stays complete; the dependent can be re-dispatched.
            logger.exception("Failed to dispatch dependent section %s/%s", report_id, section.value)

    async def _record_failure(self, job: SectionJob, error: Exception) -> None:
        try:
            await self._tools.mark_failed(job.report_id, job.section, error)
        except ReportNotFound:
            logger.warning("Report %s vanished before failure could be recorded", job.report_id)
        except Exception:
            logger.exception(
                "Could not record failure for section %s/%s", job.report_id, job.section.value
            )


def _receive_count(record: Dict[str, Any]) -> int:
    raw = (record.get("attributes") or {}).get("ApproximateReceiveCount")
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 1


@lru_cache(maxsize=1)
def get_section_worker() -> SectionWorker:
    """Initialize shared singletons for the Lambda runtime."""
    settings = get_settings()
    configure_logging(settings.log_level)

    tools = SectionTools(
        store=get_section_store(),
        source_loader=get_source_text_loader(),
        invoker=get_model_invoker(),
        model_name=settings.gemini.model_name,
    )
    return SectionWorker(
        tools,
        get_section_dispatcher(),
        auto_dispatch_dependents=settings.pipeline.auto_dispatch_dependents,
    )


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """AWS Lambda handler invoked by SQS."""
    records: List[Dict[str, Any]] = event.get("Records", [])
    if not records:
        logger.warning("No records found in event payload.")
        return {"batchItemFailures": []}

    return asyncio.run(get_section_worker().process_records(records))


__all__ = ["SectionWorker", "get_section_worker", "lambda_handler"]
