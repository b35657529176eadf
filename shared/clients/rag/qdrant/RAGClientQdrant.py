import uuid
from typing import Any

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

# Fixed namespace for deterministic UUIDv5 point ids of non-UUID message ids.
# Changing this value would orphan all points stored under derived ids.
_POINT_ID_NAMESPACE = uuid.UUID("8d1b7f5e-3c2a-4e6b-9f0d-2a4c6e8b1d3f")
_MAX_INT_POINT_ID = 2 ** 64


class RAGClientQdrant(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="http://localhost:6333", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default="chat_messages", val_type="string")
        self._vector_size = int(self.get_config_val("VECTOR_SIZE", default=1536, val_type="number"))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    def get_collection_name(self) -> str:
        return self._collection_name

    def get_vector_size(self) -> int:
        return self._vector_size

    def get_point_id(self, message_id: str) -> str | int:
        """Qdrant accepts unsigned 64-bit integers and UUIDs as point ids.

        A message id is used verbatim only when it already is the canonical
        form of one of them ("7", but not "007"; lowercase hyphenated UUIDs),
        so no two message ids share a point. Anything else is mapped to a
        UUIDv5 of the message id.
        """
        if message_id.isascii() and message_id.isdigit():
            number = int(message_id)
            if str(number) == message_id and number < _MAX_INT_POINT_ID:
                return number
        else:
            try:
                if str(uuid.UUID(message_id)) == message_id:
                    return message_id
            except ValueError:
                pass
        return str(uuid.uuid5(_POINT_ID_NAMESPACE, message_id))

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="http://localhost:6333"),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default="chat_messages"),
            EnvConfig(env_key="VECTOR_SIZE", val_type="number", default=1536),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_points(self) -> str:
        return f"/collections/{self._collection_name}/points"

    def _get_endpoint_delete_points(self) -> str:
        return f"/collections/{self._collection_name}/points/delete"

    def _get_endpoint_check_collection_existence(self) -> str:
        return f"/collections/{self._collection_name}/exists"

    def _get_endpoint_create_collection(self) -> str:
        return f"/collections/{self._collection_name}"

    def _get_endpoint_payload_index(self) -> str:
        return f"/collections/{self._collection_name}/index"

    def _get_endpoint_search(self) -> str:
        return f"/collections/{self._collection_name}/points/search"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_write_params(self) -> dict:
        return {"wait": "true"}

    def get_create_collection_payload(self) -> dict:
        return {"vectors": {"size": self._vector_size, "distance": "Cosine"}}

    def get_payload_index_payloads(self) -> list[dict]:
        return [
            {"field_name": "user_id", "field_schema": "keyword"},
            {"field_name": "chat_id", "field_schema": "keyword"},
            {"field_name": "timestamp", "field_schema": "datetime"},
        ]

    def get_upsert_payload(self, points: list[VectorPoint]) -> dict:
        return {
            "points": [
                {"id": point.id, "vector": point.vector, "payload": point.payload.model_dump()}
                for point in points
            ]
        }

    def get_delete_by_ids_payload(self, point_ids: list[str | int]) -> dict:
        return {"points": point_ids}

    def get_delete_payload(self, filter: dict) -> dict:
        return {"filter": filter}

    def get_match_condition(self, key: str, value: Any) -> dict:
        return {"key": key, "match": {"value": value}}

    def get_range_condition(self, key: str, gte: Any = None, lte: Any = None) -> dict:
        bounds = {}
        if gte is not None:
            bounds["gte"] = gte
        if lte is not None:
            bounds["lte"] = lte
        return {"key": key, "range": bounds}

    def get_filter(self, conditions: list[dict]) -> dict:
        return {"must": conditions}

    def get_search_payload(self, vector: list[float], filter: dict, limit: int, score_threshold: float) -> dict:
        return {
            "vector": vector,
            "filter": filter,
            "limit": limit,
            "score_threshold": score_threshold,
            "with_payload": True,
            "with_vector": False,
        }

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_existence(self, raw_response: dict) -> bool:
        return bool(raw_response.get("result", {}).get("exists"))

    def extract_search_points(self, raw_response: dict) -> list[dict]:
        return [
            {"id": point.get("id"), "score": point.get("score", 0.0), "payload": point.get("payload")}
            for point in raw_response.get("result", [])
        ]
