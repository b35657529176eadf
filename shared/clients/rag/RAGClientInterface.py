from abc import abstractmethod
from typing import Any

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.SearchHit import SearchHit
from shared.clients.rag.models.VectorPoint import MessageVectorPayload, VectorPoint
from shared.errors import RemoteServiceError, VectorDimensionError
from shared.helper.HelperConfig import HelperConfig
from shared.models.search import SearchOptions


class RAGClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        # set once every payload index has been applied by this process
        self._payload_indexes_ready = False

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def check_vector_dimension(self, vector: list[float]) -> None:
        """Verify that a vector fits the collection.

        Raises:
            VectorDimensionError: If the vector length differs from the configured size.
        """
        if len(vector) != self.get_vector_size():
            raise VectorDimensionError(expected=self.get_vector_size(), actual=len(vector))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    @abstractmethod
    def get_collection_name(self) -> str:
        """
        Returns the name of the collection holding the message vectors.
        """
        pass

    @abstractmethod
    def get_vector_size(self) -> int:
        """
        Returns the vector dimension the collection is (or will be) created with.
        """
        pass

    @abstractmethod
    def get_point_id(self, message_id: str) -> str | int:
        """
        Maps a message id to the point id used by the backend.

        The mapping must be deterministic so that indexing the same message
        again overwrites its point instead of adding a second one.

        Args:
            message_id (str): The id of the source message.

        Returns:
            str | int: A point id accepted by the backend.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_points(self) -> str:
        """
        Returns the endpoint path for points upsert requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self) -> str:
        """
        Returns the endpoint path for deleting points by id or by filter.
        """
        pass

    @abstractmethod
    def _get_endpoint_check_collection_existence(self) -> str:
        """
        Returns the endpoint path for collection existence check requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_create_collection(self) -> str:
        """
        Returns the endpoint path for create collection requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_payload_index(self) -> str:
        """
        Returns the endpoint path for creating payload field indexes.
        """
        pass

    @abstractmethod
    def _get_endpoint_search(self) -> str:
        """
        Returns the endpoint path for similarity search requests.
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_write_params(self) -> dict:
        """
        Returns the query parameters that make writes return only once they are durable.
        """
        pass

    @abstractmethod
    def get_create_collection_payload(self) -> dict:
        """
        Builds the request body for creating the collection with cosine distance.
        """
        pass

    @abstractmethod
    def get_payload_index_payloads(self) -> list[dict]:
        """
        Builds one request body per payload field index that filtered search relies on
        (at least user_id as exact match and timestamp as range).
        """
        pass

    @abstractmethod
    def get_upsert_payload(self, points: list[VectorPoint]) -> dict:
        """
        Builds the request body for upserting points.
        """
        pass

    @abstractmethod
    def get_delete_by_ids_payload(self, point_ids: list[str | int]) -> dict:
        """
        Builds the request body for deleting points by id.
        """
        pass

    @abstractmethod
    def get_delete_payload(self, filter: dict) -> dict:
        """
        Builds the request body for a filter-based delete.
        """
        pass

    @abstractmethod
    def get_match_condition(self, key: str, value: Any) -> dict:
        """
        Builds an exact-match condition on a payload field.
        """
        pass

    @abstractmethod
    def get_range_condition(self, key: str, gte: Any = None, lte: Any = None) -> dict:
        """
        Builds an inclusive range condition on a payload field.
        """
        pass

    @abstractmethod
    def get_filter(self, conditions: list[dict]) -> dict:
        """
        Combines conditions into a filter where all of them must hold.
        """
        pass

    @abstractmethod
    def get_search_payload(self, vector: list[float], filter: dict, limit: int, score_threshold: float) -> dict:
        """
        Builds the request body for a filtered similarity search.
        """
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_existence(self, raw_response: dict) -> bool:
        """
        Extracts whether the collection exists from an existence check response.
        """
        pass

    @abstractmethod
    def extract_search_points(self, raw_response: dict) -> list[dict]:
        """
        Extracts the scored points from a search response.

        Returns:
            list[dict]: Dicts with the keys "id", "score" and "payload", best match first.
        """
        pass

    ##########################################
    ############ FILTER BUILDER ##############
    ##########################################

    def build_search_filter(self, user_id: str, options: SearchOptions) -> dict:
        """Build the search filter. The user_id condition is always the first one
        and cannot be left out, since one collection holds the vectors of all users.

        Args:
            user_id (str): The user whose messages may be returned.
            options (SearchOptions): Optional chat, time range and role narrowing.

        Returns:
            dict: The backend filter.

        Raises:
            ValueError: If user_id is empty.
        """
        if not user_id:
            raise ValueError("user_id is required for every search.")
        conditions = [self.get_match_condition("user_id", user_id)]
        if options.chat_id:
            conditions.append(self.get_match_condition("chat_id", options.chat_id))
        if options.after_timestamp or options.before_timestamp:
            conditions.append(self.get_range_condition("timestamp", gte=options.after_timestamp, lte=options.before_timestamp))
        if options.role:
            conditions.append(self.get_match_condition("role", options.role))
        return self.get_filter(conditions)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self) -> bool:
        """Check if the collection exists in the rag backend.

        Returns:
            bool: True if the collection exists, False otherwise.
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_check_collection_existence(), raise_on_error=True)
        return bool(self.extract_existence(resp.json()))

    async def do_create_collection(self) -> None:
        """Create the collection with the configured vector size and cosine distance."""
        await self.do_request(
            method="PUT",
            json=self.get_create_collection_payload(),
            endpoint=self._get_endpoint_create_collection(),
            raise_on_error=True,
        )
        self.logging.info("Created %s collection '%s' (size=%d).", self.get_engine_name(), self.get_collection_name(), self.get_vector_size())

    async def do_create_payload_indexes(self) -> None:
        """Create the payload indexes used by filtered search and bulk deletes."""
        for index_payload in self.get_payload_index_payloads():
            await self.do_request(
                method="PUT",
                json=index_payload,
                params=self.get_write_params(),
                endpoint=self._get_endpoint_payload_index(),
                raise_on_error=True,
            )

    async def do_ensure_collection(self) -> bool:
        """Create the collection and its payload indexes if they do not exist yet.

        When creation fails because a concurrent writer created the collection
        first, that is treated as success. Payload indexes are (re)applied
        until one call of this process has created all of them, so a
        collection left without indexes by an earlier failure is repaired on
        the next call. Afterwards an existing collection costs a single
        existence check.

        Returns:
            bool: True if the collection was created by this call.

        Raises:
            RemoteServiceError: If the backend cannot be reached, or creating the
                collection or its indexes fails for another reason.
        """
        created = False
        if not await self.do_existence_check():
            try:
                await self.do_create_collection()
                created = True
            except RemoteServiceError:
                if not await self.do_existence_check():
                    raise
                self.logging.info("Collection '%s' was created concurrently by another writer.", self.get_collection_name())
        if not self._payload_indexes_ready:
            await self.do_create_payload_indexes()
            self._payload_indexes_ready = True
        return created

    async def do_upsert_point(self, message_id: str, vector: list[float], payload: MessageVectorPayload) -> str | int:
        """Insert a message point or replace the existing point of the same message.

        Returns only after the backend has persisted the write.

        Args:
            message_id (str): Id of the source message; must equal payload.message_id.
            vector (list[float]): The embedding of the message text.
            payload (MessageVectorPayload): Metadata stored alongside the vector.

        Returns:
            str | int: The point id the message was stored under.

        Raises:
            ValueError: If message_id and payload.message_id differ.
            VectorDimensionError: If the vector does not fit the collection.
            RemoteServiceError: If the upsert fails.
        """
        if payload.message_id != message_id:
            raise ValueError(f"Payload message_id '{payload.message_id}' does not match point message id '{message_id}'.")
        self.check_vector_dimension(vector)
        point = VectorPoint(id=self.get_point_id(message_id), vector=vector, payload=payload)
        await self.do_request(
            method="PUT",
            json=self.get_upsert_payload([point]),
            params=self.get_write_params(),
            endpoint=self._get_endpoint_points(),
            raise_on_error=True,
        )
        return point.id

    async def do_delete_by_message_id(self, message_id: str) -> None:
        """Delete the point of a single message."""
        await self.do_request(
            method="POST",
            json=self.get_delete_by_ids_payload([self.get_point_id(message_id)]),
            params=self.get_write_params(),
            endpoint=self._get_endpoint_delete_points(),
            raise_on_error=True,
        )
        self.logging.debug("Deleted vector of message_id=%s", message_id)

    async def do_delete_points_by_filter(self, filter: dict) -> None:
        """Delete all points matching the filter in one backend request.

        Args:
            filter (dict): The filter that identifies which points to delete.
        """
        await self.do_request(
            method="POST",
            json=self.get_delete_payload(filter),
            params=self.get_write_params(),
            endpoint=self._get_endpoint_delete_points(),
            raise_on_error=True,
        )

    async def do_delete_by_chat_id(self, chat_id: str) -> None:
        """Delete all points of a conversation."""
        if not chat_id:
            raise ValueError("chat_id is required for deleting a conversation's vectors.")
        await self.do_delete_points_by_filter(self.get_filter([self.get_match_condition("chat_id", chat_id)]))
        self.logging.info("Deleted vectors of chat_id=%s", chat_id)

    async def do_delete_by_user_id(self, user_id: str) -> None:
        """Delete all points of a user."""
        if not user_id:
            raise ValueError("user_id is required for deleting a user's vectors.")
        await self.do_delete_points_by_filter(self.get_filter([self.get_match_condition("user_id", user_id)]))
        self.logging.info("Deleted vectors of user_id=%s", user_id)

    async def do_search(self, vector: list[float], user_id: str, options: SearchOptions | None = None) -> list[SearchHit]:
        """Search the messages of one user by similarity.

        Args:
            vector (list[float]): The query embedding.
            user_id (str): Only messages of this user are returned.
            options (SearchOptions | None): Limit, score threshold and additional filters.

        Returns:
            list[SearchHit]: Up to options.limit hits with score >= options.score_threshold,
                best match first.
        """
        options = options or SearchOptions()
        body = self.get_search_payload(
            vector=vector,
            filter=self.build_search_filter(user_id, options),
            limit=options.limit,
            score_threshold=options.score_threshold,
        )
        resp = await self.do_request(
            method="POST",
            json=body,
            endpoint=self._get_endpoint_search(),
            raise_on_error=True,
        )
        hits: list[SearchHit] = []
        for point in self.extract_search_points(resp.json()):
            payload = MessageVectorPayload.model_validate(point.get("payload") or {})
            hits.append(SearchHit(message_id=payload.message_id, point_id=point["id"], score=point["score"], payload=payload))
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits
