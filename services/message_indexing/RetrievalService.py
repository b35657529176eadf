"""Retrieval service: semantic search over a user's indexed messages.

Embed the query once, then search the vector store scoped to the user.
Nothing is cached.
"""

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.SearchHit import SearchHit
from shared.helper.HelperConfig import HelperConfig
from shared.models.search import SearchOptions, SearchRequest, SearchResponse, SearchResultItem

DEFAULT_LIMIT = 5
DEFAULT_SCORE_THRESHOLD = 0.7
HISTORY_SCORE_THRESHOLD = 0.65


class RetrievalService:
    """Finds prior messages relevant to a query."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._embed_client = embed_client
        self.default_limit = int(helper_config.get_number_val("SEARCH_DEFAULT_LIMIT", default=DEFAULT_LIMIT))
        self.default_score_threshold = float(helper_config.get_number_val("SEARCH_SCORE_THRESHOLD", default=DEFAULT_SCORE_THRESHOLD))
        self.history_score_threshold = float(helper_config.get_number_val("SEARCH_HISTORY_SCORE_THRESHOLD", default=HISTORY_SCORE_THRESHOLD))

    def get_default_options(self) -> SearchOptions:
        return SearchOptions(limit=self.default_limit, score_threshold=self.default_score_threshold)

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_retrieve(self, query: str, user_id: str, options: SearchOptions | None = None) -> list[SearchHit]:
        """Return the user's messages most similar to the query.

        Args:
            query (str): Natural language query.
            user_id (str): Only this user's messages are searched.
            options (SearchOptions | None): Limit, threshold and filters; configured defaults if None.

        Returns:
            list[SearchHit]: Hits above the score threshold, best first.

        Raises:
            RemoteServiceError: If embedding or search fails.
        """
        options = options or self.get_default_options()
        await self._rag_client.do_ensure_collection()
        vector = await self._embed_client.do_embed_text(query)
        hits = await self._rag_client.do_search(vector, user_id, options)
        self.logging.debug("Retrieved %d hit(s) for user_id=%s query=%r", len(hits), user_id, query[:80])
        return hits

    async def do_search_history(self, request: SearchRequest) -> SearchResponse:
        """Search past conversations for a user-facing caller.

        Failures never propagate: the caller gets success=False and no results,
        which degrades to having no semantic context.

        Args:
            request (SearchRequest): Query, user, limit and optional filters.

        Returns:
            SearchResponse: Matching messages with rounded relevance scores.
        """
        time_range = request.time_range
        options = SearchOptions(
            limit=request.limit,
            score_threshold=self.history_score_threshold,
            chat_id=request.chat_id,
            after_timestamp=time_range.after if time_range else None,
            before_timestamp=time_range.before if time_range else None,
            role=request.role,
        )
        try:
            hits = await self.do_retrieve(request.query, request.user_id, options)
        except Exception as exc:
            self.logging.error("Search history failed for user_id=%s: %s", request.user_id, exc)
            return SearchResponse(query=request.query, success=False, message="Failed to search past conversations.")

        if not hits:
            return SearchResponse(query=request.query, success=True, message="No relevant past conversations found.")

        items = self._build_result_items(hits)
        return SearchResponse(
            query=request.query,
            success=True,
            message=f"Found {len(items)} relevant conversation(s).",
            results=items,
            total=len(items),
        )

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _build_result_items(self, hits: list[SearchHit]) -> list[SearchResultItem]:
        return [
            SearchResultItem(
                message_id=hit.message_id,
                content=hit.payload.content_preview,
                chat_id=hit.payload.chat_id,
                timestamp=hit.payload.timestamp,
                role=hit.payload.role,
                relevance_score=round(hit.score, 2),
            )
            for hit in hits
        ]
