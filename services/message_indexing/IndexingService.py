"""Message indexing service.

Turns one indexing job into a vector point: extracts the text of the
message, skips fragments too short to be useful, makes sure the collection
exists, embeds the text and upserts the point. Used directly in sync mode
and by the worker in async mode, so both modes end in the same store state.
"""

from datetime import datetime, timezone

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import MessageVectorPayload
from shared.helper.HelperConfig import HelperConfig
from shared.models.indexing import IndexingJob

MIN_TEXT_LENGTH = 10     # shorter messages are not indexed
PREVIEW_CHARS = 500      # characters kept as content_preview


class IndexingService:
    """Processes indexing jobs against one embed client and one RAG client."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._embed_client = embed_client
        self._min_text_length = int(helper_config.get_number_val("INDEX_MIN_TEXT_LENGTH", default=MIN_TEXT_LENGTH))
        self._preview_chars = int(helper_config.get_number_val("INDEX_PREVIEW_CHARS", default=PREVIEW_CHARS))

    ##########################################
    ################ CHECKER #################
    ##########################################

    def should_index(self, text: str) -> bool:
        """Length-only policy: empty text or text below the minimum length is skipped."""
        return bool(text) and len(text) >= self._min_text_length

    ##########################################
    ############# CORE INDEXING ##############
    ##########################################

    async def do_process_job(self, job: IndexingJob) -> bool:
        """Index a single message.

        Args:
            job (IndexingJob): The message to index.

        Returns:
            bool: True if the message was indexed, False if it was skipped as too short.

        Raises:
            RemoteServiceError: If the embedding provider or the vector store fails.
            VectorDimensionError: If the embedding does not fit the collection.
        """
        text = job.extract_text()
        if not self.should_index(text):
            self.logging.debug(
                "Skipping message_id=%s: %d characters of text (minimum %d).",
                job.message_id, len(text), self._min_text_length,
            )
            return False

        await self._rag_client.do_ensure_collection()

        vector = await self._embed_client.do_embed_text(text)

        payload = MessageVectorPayload(
            user_id=job.user_id,
            chat_id=job.chat_id,
            message_id=job.message_id,
            role=job.role,
            timestamp=datetime.now(timezone.utc).isoformat(),
            content_preview=text[: self._preview_chars],
            has_tool_calls=job.has_tool_calls(),
        )
        point_id = await self._rag_client.do_upsert_point(job.message_id, vector, payload)

        self.logging.info(
            "Indexed message_id=%s (chat_id=%s, role=%s) as point %s.",
            job.message_id, job.chat_id, job.role, point_id,
        )
        return True
