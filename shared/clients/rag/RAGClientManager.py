from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.errors import ConfigurationError

DEFAULT_RAG_ENGINE = "qdrant"


class RAGClientManager:
    """
    Manager class to handle the RAG client (vector store) based on configuration.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the RAG engine from ENV configuration (RAG_ENGINE, default "qdrant").

        Returns:
            str: The capitalized RAG engine name, e.g. "Qdrant".
        """
        engine = self.helper_config.get_string_val("RAG_ENGINE", default=DEFAULT_RAG_ENGINE)
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> RAGClientInterface:
        """
        Initializes the RAG client for the configured engine.

        Returns:
            RAGClientInterface: The RAG client instance.

        Raises:
            ConfigurationError: If the configured engine is not supported.
        """
        engine = self._get_engine_from_env()
        className = f"RAGClient{engine}"
        try:
            module = __import__(
                f"shared.clients.rag.{engine.lower()}.{className}",
                fromlist=[className],
            )
            client_class = getattr(module, className)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(f"Unsupported RAG engine specified: '{engine}'. Error: {e}")
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated RAG client for engine: %s", engine)
        return client

    def get_client(self) -> RAGClientInterface:
        """
        Returns the instantiated RAG client.

        Returns:
            RAGClientInterface: The RAG client instance.
        """
        return self.client
