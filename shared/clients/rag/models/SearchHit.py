from pydantic import BaseModel

from shared.clients.rag.models.VectorPoint import MessageVectorPayload


class SearchHit(BaseModel):
    """One ranked result of a similarity search.

    Attributes:
        message_id: Id of the indexed message (taken from the payload).
        point_id:   Id of the point in the RAG backend.
        score:      Cosine similarity; never below the threshold of the search.
        payload:    The stored message metadata.
    """

    message_id: str
    point_id: str | int
    score: float
    payload: MessageVectorPayload
