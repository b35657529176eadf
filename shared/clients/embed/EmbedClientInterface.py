from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.errors import EmbeddingResponseError
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and batching config
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=self._get_default_model())
        self.embed_batch_size = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_BATCH_SIZE", default=64))
        if self.embed_batch_size < 1:
            raise ValueError(f"{self.get_client_type().upper()}_BATCH_SIZE must be at least 1, got {self.embed_batch_size}.")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    @abstractmethod
    def _get_default_model(self) -> str:
        """
        Returns the model used when EMBED_MODEL is not set.

        Returns:
            str: The provider specific model name (e.g. "openai/text-embedding-3-small")
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/embeddings")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            EmbeddingResponseError: If the response format is invalid or embeddings are empty.
        """
        pass

    def _validate_embeddings(self, texts: list[str], embeddings: list[list[float]]) -> None:
        """Ensure one vector per input and a single dimensionality across all vectors."""
        if len(embeddings) != len(texts):
            raise EmbeddingResponseError(
                self.get_engine_name(),
                f"Expected {len(texts)} embeddings from model {self.embed_model}, got {len(embeddings)}.",
            )
        dimensions = {len(vector) for vector in embeddings}
        if len(dimensions) > 1:
            raise EmbeddingResponseError(
                self.get_engine_name(),
                f"Model {self.embed_model} returned vectors of mixed dimensions: {sorted(dimensions)}.",
            )
        if 0 in dimensions:
            raise EmbeddingResponseError(self.get_engine_name(), f"Model {self.embed_model} returned an empty vector.")

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Send a single embedding request and return the extracted vectors.

        Args:
            texts (list[str] | str): One or more texts to embed.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the inputs.

        Raises:
            RemoteServiceError: If the HTTP request fails.
            EmbeddingResponseError: If the response does not contain valid embeddings.
        """
        texts = [texts] if isinstance(texts, str) else texts
        body = self.get_embed_payload(texts)
        response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body, raise_on_error=True)
        try:
            response_data = response.json()
        except ValueError as exc:
            raise EmbeddingResponseError(self.get_engine_name(), f"Embedding response is not valid JSON: {exc}") from exc
        embeddings = self.extract_embeddings_from_response(response_data)
        self._validate_embeddings(texts, embeddings)
        return embeddings

    async def do_embed_text(self, text: str) -> list[float]:
        """Embed a single text.

        Args:
            text (str): Non-empty text. Filtering empty input is the caller's job.

        Returns:
            list[float]: The embedding vector.
        """
        embeddings = await self.do_embed([text])
        return embeddings[0]

    async def do_embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed many texts, split into requests of at most embed_batch_size texts.

        Args:
            texts (list[str]): Non-empty texts.

        Returns:
            list[list[float]]: One vector per input, in input order, all of the same dimension.
        """
        if not texts:
            return []
        vectors: list[list[float]] = []
        for batch_start in range(0, len(texts), self.embed_batch_size):
            batch = texts[batch_start: batch_start + self.embed_batch_size]
            vectors.extend(await self.do_embed(batch))
        self._validate_embeddings(texts, vectors)
        self.logging.debug("Embedded %d texts with %s in %d request(s).", len(texts), self.embed_model,
                           (len(texts) + self.embed_batch_size - 1) // self.embed_batch_size)
        return vectors
