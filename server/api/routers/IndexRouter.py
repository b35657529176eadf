"""Index router: the chat pipeline reports saved messages and deletions here.

POST /index is called once per persisted message (user and assistant).
In sync mode the response tells whether the message was indexed or
skipped; in async mode it only confirms the job was queued. Failures come
back as 5xx so the caller can log them and carry on with the chat.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key
from shared.errors import ConfigurationError, IndexingPipelineError
from shared.models.indexing import IndexingJob

index_router = APIRouter()


def _to_http_exception(exc: IndexingPipelineError) -> HTTPException:
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=500, detail=exc.message)
    return HTTPException(status_code=502, detail=exc.message)


@index_router.post(
    "/index",
    dependencies=[Depends(verify_api_key)],
    tags=["Index"],
)
async def handle_index(request: Request, job: IndexingJob) -> JSONResponse:
    """Index (or queue) a saved chat message.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        job (IndexingJob): The saved message.

    Returns:
        JSONResponse: {"status": "indexed" | "skipped" | "queued", "message_id": ...}

    Raises:
        HTTPException: 502 on remote failures, 500 on configuration errors.
    """
    dispatcher = request.app.state.dispatcher
    try:
        status = await dispatcher.do_index(job)
    except IndexingPipelineError as exc:
        request.app.state.logging.warning("Vector indexing failed for message_id=%s: %s", job.message_id, exc)
        raise _to_http_exception(exc)
    return JSONResponse(content={"status": status, "message_id": job.message_id})


@index_router.delete(
    "/index/messages/{message_id}",
    dependencies=[Depends(verify_api_key)],
    tags=["Index"],
)
async def handle_delete_message(request: Request, message_id: str) -> JSONResponse:
    """Remove the vector of a single message."""
    try:
        await request.app.state.rag_client.do_delete_by_message_id(message_id)
    except IndexingPipelineError as exc:
        raise _to_http_exception(exc)
    return JSONResponse(content={"status": "deleted", "message_id": message_id})


@index_router.delete(
    "/index/chats/{chat_id}",
    dependencies=[Depends(verify_api_key)],
    tags=["Index"],
)
async def handle_delete_chat(request: Request, chat_id: str) -> JSONResponse:
    """Remove the vectors of all messages of a conversation."""
    try:
        await request.app.state.rag_client.do_delete_by_chat_id(chat_id)
    except IndexingPipelineError as exc:
        raise _to_http_exception(exc)
    return JSONResponse(content={"status": "deleted", "chat_id": chat_id})


@index_router.delete(
    "/index/users/{user_id}",
    dependencies=[Depends(verify_api_key)],
    tags=["Index"],
)
async def handle_delete_user(request: Request, user_id: str) -> JSONResponse:
    """Remove the vectors of all messages of a user."""
    try:
        await request.app.state.rag_client.do_delete_by_user_id(user_id)
    except IndexingPipelineError as exc:
        raise _to_http_exception(exc)
    return JSONResponse(content={"status": "deleted", "user_id": user_id})
