from shared.helper.HelperConfig import HelperConfig
from shared.clients.queue.QueueClientInterface import QueueClientInterface
from shared.errors import ConfigurationError

DEFAULT_QUEUE_ENGINE = "redis"


class QueueClientManager:
    """
    Manager class to handle the queue client based on configuration.

    Constructing the manager fails with a ConfigurationError when the queue
    backend address is missing, so only processes that need the queue
    (async dispatch, worker) should create it.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        engine = self.helper_config.get_string_val("QUEUE_ENGINE", default=DEFAULT_QUEUE_ENGINE)
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> QueueClientInterface:
        """
        Initializes the queue client for the configured engine.

        Raises:
            ConfigurationError: If the engine is not supported or its settings are missing.
        """
        engine = self._get_engine_from_env()
        className = f"QueueClient{engine}"
        try:
            module = __import__(
                f"shared.clients.queue.{engine.lower()}.{className}",
                fromlist=[className],
            )
            client_class = getattr(module, className)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(f"Unsupported queue engine specified: '{engine}'. Error: {e}")
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated queue client for engine: %s", engine)
        return client

    def get_client(self) -> QueueClientInterface:
        return self.client
