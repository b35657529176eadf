"""Worker runner entry point.

Starts a long-running message indexer that consumes the indexing queue.
Run one or more of these next to the API server when VECTOR_INDEX_MODE=async.

Usage:
    python -m worker.worker_runner
"""

import asyncio
import signal

from services.message_indexing.IndexingService import IndexingService
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.queue.QueueClientManager import QueueClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.errors import QueueConnectionError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from worker.IndexingWorker import IndexingWorker


async def main() -> None:
    """Boot the clients and run the worker loop until SIGINT/SIGTERM."""
    logger = setup_logging("worker")
    config = HelperConfig(logger=logger)

    # missing queue address is fatal at startup
    queue_client = QueueClientManager(helper_config=config).get_client()
    rag_client = RAGClientManager(helper_config=config).get_client()
    embed_client = EmbedClientManager(helper_config=config).get_client()

    try:
        await queue_client.boot()
        await rag_client.boot()
        await embed_client.boot()
        try:
            await queue_client.do_healthcheck()
        except QueueConnectionError as exc:
            # the loop keeps retrying with backoff until the queue is back
            logger.warning("Queue not reachable at startup: %s", exc)

        worker = IndexingWorker(
            helper_config=config,
            queue_client=queue_client,
            indexing_service=IndexingService(helper_config=config, rag_client=rag_client, embed_client=embed_client),
        )

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, worker.request_stop)
            except NotImplementedError:
                # Windows event loops have no signal handlers
                signal.signal(sig, lambda *_: worker.request_stop())

        await worker.do_run()
    finally:
        await embed_client.close()
        await rag_client.close()
        await queue_client.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
