"""Exception hierarchy for the message indexing pipeline.

Configuration problems, remote service failures and queue connectivity
problems are kept apart so callers can decide what is fatal, what is
logged and discarded, and what is retried.
"""

from typing import Any


class IndexingPipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


##########################################
############ CONFIGURATION ###############
##########################################

class ConfigurationError(IndexingPipelineError, ValueError):
    """Raised when a required configuration value is missing or invalid."""
    pass


class VectorDimensionError(ConfigurationError):
    """Raised when an embedding does not match the collection's vector size."""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Embedding dimension {actual} does not match the configured collection size {expected}",
            {"expected": expected, "actual": actual},
        )
        self.expected = expected
        self.actual = actual


##########################################
############ REMOTE SERVICES #############
##########################################

class RemoteServiceError(IndexingPipelineError):
    """Raised when the embedding provider or the vector store fails a request."""

    def __init__(
        self,
        service: str,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        self.service = service
        self.status_code = status_code
        self.response_body = response_body
        details: dict[str, Any] = {"service": service}
        if status_code is not None:
            details["status_code"] = status_code
        if response_body:
            details["response_body"] = response_body[:200]
        super().__init__(message, details)


class EmbeddingResponseError(RemoteServiceError):
    """Raised when the embedding provider answers with an unusable payload."""

    def __init__(self, service: str, message: str):
        super().__init__(service=service, message=message)


##########################################
################ QUEUE ###################
##########################################

class QueueConnectionError(IndexingPipelineError):
    """Raised when the queue backend cannot be reached."""
    pass
