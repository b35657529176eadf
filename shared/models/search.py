"""Pydantic models for similarity search options, requests and responses."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from shared.clients.rag.models.VectorPoint import MessageRole


def _check_iso_timestamp(value: str | None) -> str | None:
    if value is None:
        return value
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"'{value}' is not an ISO-8601 timestamp")
    return value


class SearchOptions(BaseModel):
    """Optional narrowing of a similarity search. All filters are combined with AND.

    The timestamp bounds are inclusive.
    """

    limit: int = Field(default=5, ge=1)
    score_threshold: float = Field(default=0.7, ge=-1.0, le=1.0)
    chat_id: str | None = None
    after_timestamp: str | None = None
    before_timestamp: str | None = None
    role: MessageRole | None = None

    @field_validator("after_timestamp", "before_timestamp")
    @classmethod
    def check_timestamps(cls, value: str | None) -> str | None:
        return _check_iso_timestamp(value)


class TimeRange(BaseModel):
    after: str | None = None
    before: str | None = None

    @field_validator("after", "before")
    @classmethod
    def check_timestamps(cls, value: str | None) -> str | None:
        return _check_iso_timestamp(value)


class SearchRequest(BaseModel):
    """Natural language search over a user's past conversations."""

    query: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    limit: int = Field(default=5, ge=1, le=10)
    time_range: TimeRange | None = None
    chat_id: str | None = None
    role: MessageRole | None = None


class SearchResultItem(BaseModel):
    """A single past message returned from the vector index."""

    message_id: str
    content: str
    chat_id: str
    timestamp: str
    role: MessageRole
    relevance_score: float


class SearchResponse(BaseModel):
    """Search outcome. success is False when the search itself failed."""

    query: str
    success: bool
    message: str
    results: list[SearchResultItem] = []
    total: int = 0
