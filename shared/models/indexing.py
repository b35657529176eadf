"""Indexing job model: the unit of work passed from the chat pipeline to the indexer."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from shared.clients.rag.models.VectorPoint import MessageRole


IndexingStatus = Literal["indexed", "skipped", "queued"]


class IndexingJob(BaseModel):
    """A persisted chat message that should become searchable.

    The job is self-contained so it can travel through the queue without
    any lookups. Field aliases match the camelCase shape the chat pipeline
    produces; snake_case names are accepted as well.

    Attributes:
        message_id: Unique id of the message, used as the vector point key.
        chat_id:    Conversation the message belongs to.
        user_id:    Owning user.
        role:       "user" or "assistant".
        parts:      Ordered content segments; only {"type": "text", "text": ...} segments are indexed.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message_id: str = Field(alias="messageId", min_length=1)
    chat_id: str = Field(alias="chatId", min_length=1)
    user_id: str = Field(alias="userId", min_length=1)
    role: MessageRole
    parts: list[Any] = []

    def to_queue_message(self) -> str:
        """Serialize the job for the queue (camelCase JSON)."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_queue_message(cls, raw: str | bytes) -> "IndexingJob":
        """Deserialize a job popped from the queue.

        Raises:
            pydantic.ValidationError: If the message is not valid JSON or not a valid job.
        """
        return cls.model_validate_json(raw)

    def extract_text(self) -> str:
        """Concatenate the text segments of the message in order, separated by newlines.

        Non-text segments (files, tool calls, reasoning, ...) contribute nothing.
        """
        texts = [
            part["text"]
            for part in self.parts
            if isinstance(part, dict) and part.get("type") == "text" and isinstance(part.get("text"), str)
        ]
        return "\n".join(texts)

    def has_tool_calls(self) -> bool:
        return any(
            isinstance(part, dict) and str(part.get("type", "")).startswith("tool-")
            for part in self.parts
        )
