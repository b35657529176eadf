"""FastAPI application entry point for the message indexing API."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import os
from server.api.routers.IndexRouter import index_router
from server.api.routers.QueryRouter import query_router
from services.message_indexing.IndexingDispatcher import MODE_ASYNC, IndexingDispatcher, read_index_mode
from services.message_indexing.IndexingService import IndexingService
from services.message_indexing.RetrievalService import RetrievalService
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.queue.QueueClientManager import QueueClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.errors import RemoteServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging

app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown."""
    app.state.logging = setup_logging("api")
    app.state.config = HelperConfig(logger=app.state.logging)
    config = app.state.config

    # Initialise clients; the queue is only needed (and only required) in async mode
    rag_client = RAGClientManager(helper_config=config).get_client()
    embed_client = EmbedClientManager(helper_config=config).get_client()
    mode = read_index_mode(config)
    queue_client = QueueClientManager(helper_config=config).get_client() if mode == MODE_ASYNC else None

    await rag_client.boot()
    await embed_client.boot()
    if queue_client:
        await queue_client.boot()
        await queue_client.do_healthcheck()

    # the collection itself is created lazily on the first write
    try:
        await rag_client.do_healthcheck()
    except RemoteServiceError as exc:
        app.state.logging.warning("Vector store not reachable at startup: %s", exc)

    # Wire up services
    indexing_service = IndexingService(helper_config=config, rag_client=rag_client, embed_client=embed_client)
    app.state.rag_client = rag_client
    app.state.dispatcher = IndexingDispatcher(
        helper_config=config,
        indexing_service=indexing_service,
        queue_client=queue_client,
        mode=mode,
    )
    app.state.retrieval_service = RetrievalService(helper_config=config, rag_client=rag_client, embed_client=embed_client)

    app.state.logging.info("Message indexing API ready (%s mode).", mode)
    yield

    # Shutdown
    await embed_client.close()
    await rag_client.close()
    if queue_client:
        await queue_client.close()
    app.state.logging.info("Message indexing API shut down.")


def create_app(with_lifespan: bool = True) -> FastAPI:
    """Build the FastAPI application.

    Args:
        with_lifespan (bool): Wire clients from the environment on startup. Tests pass
            False and populate app.state themselves.
    """
    app = FastAPI(
        title="Chat Message Indexer",
        description="Semantic indexing and retrieval of chat messages.",
        version=app_version,
        lifespan=lifespan if with_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["Health"])
    async def health() -> dict:
        return {"status": "ok", "version": app_version}

    app.include_router(index_router)
    app.include_router(query_router)
    return app


app = create_app()


# Server Start
if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("APP_PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
