"""Vector point models: the metadata stored alongside each indexed chat message."""

from typing import Literal

from pydantic import BaseModel, ConfigDict


MessageRole = Literal["user", "assistant"]


class MessageVectorPayload(BaseModel):
    """Payload stored alongside each message vector in the RAG backend.

    user_id and chat_id are written once per point; moving a message to
    another owner means deleting the point and indexing it again.
    message_id always equals the id of the message the point was built from.

    Attributes:
        user_id:          MANDATORY: owning user, enforced as a filter on every search.
        chat_id:          Conversation the message belongs to.
        message_id:       Id of the source message.
        role:             "user" or "assistant".
        timestamp:        ISO-8601 UTC time the point was written (not the message creation time).
        content_preview:  First characters of the extracted message text.
        has_tool_calls:   True when the message carried tool invocation parts.
    """

    model_config = ConfigDict(frozen=True)

    # Isolation
    user_id: str

    # Grouping
    chat_id: str
    message_id: str

    # Filtering
    role: MessageRole
    timestamp: str

    # Display
    content_preview: str

    # Optional enrichment
    has_tool_calls: bool = False


class VectorPoint(BaseModel):
    """A single point as sent to the RAG backend on upsert."""

    id: str | int
    vector: list[float]
    payload: MessageVectorPayload
