from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.errors import ConfigurationError, EmbeddingResponseError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOpenrouter(EmbedClientInterface):
    """Embedding client for OpenRouter's OpenAI-compatible /embeddings endpoint."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://openrouter.ai/api/v1", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Openrouter"

    def _get_default_model(self) -> str:
        return "openai/text-embedding-3-small"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://openrouter.ai/api/v1"),
            # deployments without indexing traffic never need the key
            EnvConfig(env_key="API_KEY", val_type="string", default=None, lazy=True),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        try:
            api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        except ConfigurationError as exc:
            raise ConfigurationError(
                f"{self._get_config_key_name('API_KEY')} is required for embeddings. "
                "Set this environment variable to enable semantic chat history search.",
                exc.details,
            ) from exc
        return {"Authorization": f"Bearer {api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/models"

    def get_endpoint_embedding(self) -> str:
        return "/embeddings"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from an OpenAI-style response.

        The "data" items carry an "index"; they are sorted by it since batched
        responses are not guaranteed to come back in input order.

        Args:
            response_data (dict): {"data": [{"embedding": [...], "index": 0}, ...], ...}

        Returns:
            list[list[float]]: Embedding vectors in input order.

        Raises:
            EmbeddingResponseError: If the response does not contain valid embeddings.
        """
        items = response_data.get("data")
        if not isinstance(items, list) or not items:
            raise EmbeddingResponseError(
                self.get_engine_name(),
                "OpenRouter response does not contain embeddings. "
                f"Response keys: {list(response_data.keys())}",
            )
        try:
            ordered = sorted(items, key=lambda item: item["index"])
            return [[float(v) for v in item["embedding"]] for item in ordered]
        except (KeyError, TypeError, ValueError) as exc:
            raise EmbeddingResponseError(self.get_engine_name(), f"Malformed embedding item in OpenRouter response: {exc}") from exc
