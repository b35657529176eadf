"""Query router: semantic search over a user's past conversations."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key
from shared.models.search import SearchRequest

query_router = APIRouter()


@query_router.post(
    "/query",
    dependencies=[Depends(verify_api_key)],
    tags=["Query"],
)
async def handle_query(request: Request, body: SearchRequest) -> JSONResponse:
    """Handle a search-past-conversations request.

    The user_id in the body scopes the search; it is enforced by the vector
    store filter, not by post-filtering. Search failures are reported with
    success=false and an empty result list rather than an error status.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (SearchRequest): Query text, user_id, limit and optional filters.

    Returns:
        JSONResponse: The SearchResponse.
    """
    request.app.state.logging.info(
        "Query received: user_id=%s query=%r", body.user_id, body.query[:80]
    )
    result = await request.app.state.retrieval_service.do_search_history(body)
    return JSONResponse(content=result.model_dump())
