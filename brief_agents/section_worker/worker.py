"""Local worker that processes queued section jobs from SQLite."""

from __future__ import annotations

import asyncio
import logging

from briefing.clients.local_queue import SQLiteQueueClient
from briefing.core.config import get_settings
from brief_agents.section_worker.handler import SectionWorker, get_section_worker

logger = logging.getLogger(__name__)


class SectionQueueWorker:
    """Poll the SQLite queue and run leased jobs through the section worker.

    Jobs reported as failed stay leased and are redelivered once their
    visibility timeout expires, mirroring the SQS partial-batch contract.
    """

    def __init__(
        self,
        queue_client: SQLiteQueueClient,
        worker: SectionWorker,
        poll_interval_seconds: float = 1.0,
        batch_size: int = 10,
        visibility_timeout_seconds: float = 900.0,
    ) -> None:
        self._queue = queue_client
        self._worker = worker
        self._poll_interval = poll_interval_seconds
        self._batch_size = batch_size
        self._visibility_timeout = visibility_timeout_seconds

    async def run_once(self) -> int:
        """Process one leased batch; return how many records it held."""
        records = self._queue.receive_batch(
            max_messages=self._batch_size,
            visibility_timeout=self._visibility_timeout,
        )
        if not records:
            return 0

        response = await self._worker.process_records(records)
        failed = {item["itemIdentifier"] for item in response["batchItemFailures"]}
        self._queue.ack(
            record["messageId"] for record in records if record["messageId"] not in failed
        )
        if failed:
            logger.warning("%d of %d section jobs failed; left for redelivery", len(failed), len(records))
        return len(records)

    async def run_forever(self) -> None:
        while True:
            processed = await self.run_once()
            if not processed:
                await asyncio.sleep(self._poll_interval)


async def main(poll_interval_seconds: float = 1.0) -> None:
    settings = get_settings()
    queue_client = SQLiteQueueClient(
        settings.pipeline.local_db_path,
        max_receive_count=settings.pipeline.max_receive_count,
    )
    worker = SectionQueueWorker(
        queue_client=queue_client,
        worker=get_section_worker(),
        poll_interval_seconds=poll_interval_seconds,
        visibility_timeout_seconds=settings.pipeline.visibility_timeout_seconds,
    )
    await worker.run_forever()


if __name__ == "__main__":  # pragma: no cover - manual execution path
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Section queue worker stopped")
