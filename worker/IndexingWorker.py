"""Indexing worker loop.

Blocks on the queue, processes one job at a time through the same
IndexingService used in sync mode, and keeps going no matter what a single
job does. Only a stop request ends the loop.
"""

import asyncio

from pydantic import ValidationError

from services.message_indexing.IndexingService import IndexingService
from shared.clients.queue.QueueClientInterface import QueueClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.indexing import IndexingJob

POP_TIMEOUT = 5        # seconds a pop blocks before the stop flag is checked again
RETRY_BACKOFF = 1      # seconds to wait after a queue connection error


class IndexingWorker:
    """Consumes indexing jobs from the queue until asked to stop."""

    def __init__(
        self,
        helper_config: HelperConfig,
        queue_client: QueueClientInterface,
        indexing_service: IndexingService,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._queue_client = queue_client
        self._indexing_service = indexing_service
        self._pop_timeout = float(helper_config.get_number_val("QUEUE_POP_TIMEOUT", default=POP_TIMEOUT))
        self._retry_backoff = float(helper_config.get_number_val("WORKER_RETRY_BACKOFF", default=RETRY_BACKOFF))
        self._stop_event = asyncio.Event()

        # counters for the shutdown summary
        self.indexed = 0
        self.skipped = 0
        self.failed = 0

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    def request_stop(self) -> None:
        """Ask the loop to finish after the current iteration."""
        self._stop_event.set()

    def is_stopping(self) -> bool:
        return self._stop_event.is_set()

    async def _backoff(self) -> None:
        # wakes up early when a stop is requested
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self._retry_backoff)
        except asyncio.TimeoutError:
            pass

    ##########################################
    ################ LOOP ####################
    ##########################################

    async def do_run(self) -> None:
        """Run until request_stop() is called."""
        self.logging.info(
            "Message indexer worker started on queue '%s'.", self._queue_client.get_queue_name(), color="green",
        )
        while not self._stop_event.is_set():
            await self.do_run_once()
        self.logging.info(
            "Message indexer worker stopped: %d indexed, %d skipped, %d failed.",
            self.indexed, self.skipped, self.failed,
        )

    async def do_run_once(self) -> bool:
        """Pop at most one job and process it.

        Returns:
            bool: True if a job was taken from the queue, False if the wait timed
                out or the queue was unavailable.
        """
        try:
            raw = await self._queue_client.do_pop(timeout=self._pop_timeout)
        except Exception as exc:
            self.logging.error("Queue error: %s. Retrying in %.1fs.", exc, self._retry_backoff)
            await self._backoff()
            return False

        if raw is None:
            return False

        await self._handle_message(raw)
        return True

    async def _handle_message(self, raw: str) -> None:
        try:
            job = IndexingJob.from_queue_message(raw)
        except ValidationError as exc:
            self.failed += 1
            self.logging.error("Discarding malformed indexing job %r: %s", raw[:200], exc)
            return

        try:
            indexed = await self._indexing_service.do_process_job(job)
        except Exception as exc:
            self.failed += 1
            self.logging.error("Indexing failed for message_id=%s: %s", job.message_id, exc)
            return

        if indexed:
            self.indexed += 1
            self.logging.info("Indexed message: %s", job.message_id)
        else:
            self.skipped += 1
