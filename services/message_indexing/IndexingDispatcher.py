"""Indexing dispatcher: the single entry point the chat pipeline calls per saved message.

The mode is chosen once when the dispatcher is built:

- sync:  the job is processed inline; the caller sees success or failure.
- async: the job is pushed onto the queue and processed later by a worker;
         the caller only learns that the push was acknowledged.
"""

from typing import Awaitable, Callable

from shared.clients.queue.QueueClientInterface import QueueClientInterface
from shared.errors import ConfigurationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.indexing import IndexingJob, IndexingStatus
from services.message_indexing.IndexingService import IndexingService

MODE_SYNC = "sync"
MODE_ASYNC = "async"


def read_index_mode(helper_config: HelperConfig) -> str:
    """Return "async" if VECTOR_INDEX_MODE is "async", otherwise "sync"."""
    return helper_config.get_choice_val("VECTOR_INDEX_MODE", choices=[MODE_SYNC, MODE_ASYNC], default=MODE_SYNC)


class IndexingDispatcher:
    """Routes indexing jobs inline or through the queue."""

    def __init__(
        self,
        helper_config: HelperConfig,
        indexing_service: IndexingService,
        queue_client: QueueClientInterface | None = None,
        mode: str | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._indexing_service = indexing_service
        self._queue_client = queue_client
        self.mode = mode or read_index_mode(helper_config)

        if self.mode == MODE_ASYNC:
            if queue_client is None:
                raise ConfigurationError("Async indexing mode requires a queue client.")
            self._index: Callable[[IndexingJob], Awaitable[IndexingStatus]] = self._index_enqueue
        elif self.mode == MODE_SYNC:
            self._index = self._index_inline
        else:
            raise ConfigurationError(f"Unknown indexing mode '{self.mode}'.")
        self.logging.info("Indexing dispatcher running in %s mode.", self.mode)

    ##########################################
    ############### STRATEGIES ###############
    ##########################################

    async def _index_inline(self, job: IndexingJob) -> IndexingStatus:
        indexed = await self._indexing_service.do_process_job(job)
        return "indexed" if indexed else "skipped"

    async def _index_enqueue(self, job: IndexingJob) -> IndexingStatus:
        await self._queue_client.do_push(job.to_queue_message())
        self.logging.debug("Queued message_id=%s for indexing.", job.message_id)
        return "queued"

    ##########################################
    ################ ENTRY ###################
    ##########################################

    async def do_index(self, job: IndexingJob) -> IndexingStatus:
        """Index a message according to the configured mode.

        Args:
            job (IndexingJob): The saved message.

        Returns:
            IndexingStatus: "indexed" or "skipped" in sync mode, "queued" in async mode.

        Raises:
            IndexingPipelineError: In sync mode any processing failure; in async mode
                a failed push.
        """
        return await self._index(job)

    async def do_index_best_effort(self, job: IndexingJob) -> IndexingStatus | None:
        """Index a message without ever failing the caller.

        Indexing must not break the chat response, so failures are logged
        as warnings and None is returned.
        """
        try:
            return await self._index(job)
        except Exception as exc:
            self.logging.warning("Vector indexing failed for message_id=%s: %s", job.message_id, exc)
            return None
