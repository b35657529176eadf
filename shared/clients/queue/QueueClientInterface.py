from abc import ABC, abstractmethod
from typing import Any

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class QueueClientInterface(ABC):
    """Durable FIFO channel between the indexing producer and the workers.

    Delivery is at-least-once: a message popped by a worker that crashes
    before finishing is lost or, depending on the backend, delivered again.
    Consumers must therefore process idempotently.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the queue are set.

        Raises:
            ConfigurationError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_client_type(self) -> str:
        return "queue"

    def get_engine_name(self) -> str:
        """
        Returns the name of the queue backend in lowercase. E.g. "redis"
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    @abstractmethod
    def get_queue_name(self) -> str:
        """
        Returns the name of the queue the jobs are pushed to.
        """
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns all required configurations for the queue backend.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The full configuration key name. E.g. "QUEUE_REDIS_URL"
        """
        return f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        key = self._get_config_key_name(raw_key)
        if val_type == "string":
            return self._helper_config.get_string_val(key, default=default)
        elif val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        elif val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        raise ValueError(f"Unsupported config value type '{val_type}' for env key '{raw_key}' in QUEUE client '{self.get_engine_name()}'.")

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    @abstractmethod
    async def boot(self) -> None:
        """Open the connection to the queue backend."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection to the queue backend."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_healthcheck(self) -> None:
        """
        Raises:
            QueueConnectionError: If the backend is not reachable.
        """
        pass

    @abstractmethod
    async def do_push(self, message: str) -> None:
        """Append a message to the queue. Returns once the backend acknowledged it.

        Raises:
            QueueConnectionError: If the backend is not reachable.
        """
        pass

    @abstractmethod
    async def do_pop(self, timeout: float) -> str | None:
        """Remove and return the oldest message, waiting up to timeout seconds.

        Returns:
            str | None: The message, or None when the wait timed out.

        Raises:
            QueueConnectionError: If the backend is not reachable.
        """
        pass

    @abstractmethod
    async def do_length(self) -> int:
        """Return the number of messages waiting in the queue."""
        pass
