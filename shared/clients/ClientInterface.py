from abc import ABC, abstractmethod
from typing import Any

import httpx

from shared.errors import RemoteServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientInterface(ABC):
    """Base class of all HTTP backed clients (embedding provider, vector store).

    Settings are read from "<TYPE>_<ENGINE>_<KEY>" environment variables,
    e.g. RAG_QDRANT_BASE_URL. The HTTP connection is opened once in boot()
    and shared by all requests of the process.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)
        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Fails fast on missing or malformed settings. Settings flagged as lazy
        are checked on first use instead.

        Raises:
            ConfigurationError: If an eagerly required setting is missing or invalid.
        """
        for config in self._get_required_config():
            if config.lazy:
                continue
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the type of the client, e.g. "rag" or "embed".
        """
        pass

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """
        Returns the name of the backend engine, e.g. "Qdrant".
        """
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The full environment variable name, e.g. "EMBED_OPENROUTER_API_KEY".
        """
        return f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Reads a setting of this client.

        Args:
            raw_key (str): The key without prefix, e.g. "BASE_URL".
            default (Any): Value used when the variable is not set; None makes it required.
            val_type (str): "string", "number", "bool" or "list".

        Raises:
            ConfigurationError: If the value is required but missing, or cannot be parsed.
            ValueError: If val_type is not supported.
        """
        key = self._get_config_key_name(raw_key)
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        if val_type not in readers:
            raise ValueError(f"Unsupported config value type '{val_type}' for '{key}'.")
        return readers[val_type](key, default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns the headers that authenticate requests against the backend; empty if none are needed.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        pass

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Open the HTTP client. Calling it again is a no-op.

        Args:
            transport (httpx.AsyncBaseTransport | None): Custom transport, e.g. httpx.MockTransport.
        """
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)
        self.logging.debug("Booted %s client '%s' for %s", self.get_client_type(), self.get_engine_name(), self._get_base_url())

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """
        Raises:
            RemoteServiceError: If the backend is unreachable or answers with an error status.
        """
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)

    async def do_request(
        self,
        method: str = "GET",
        endpoint: str = "",
        json: dict | None = None,
        params: dict | None = None,
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send a request to the backend.

        Args:
            method: HTTP method.
            endpoint: Path appended to the base URL.
            json: JSON body.
            params: URL query parameters.
            additional_headers: Headers that override the auth header.
            raise_on_error: Raise on statuses >= 300 instead of returning the response.

        Returns:
            The raw httpx.Response.

        Raises:
            RuntimeError: If boot() has not been called.
            ConfigurationError: If credentials needed for the request are missing.
            RemoteServiceError: If the transport fails, or on an error status with raise_on_error.
        """
        if self._client is None:
            raise RuntimeError("HTTP client not initialised. Call boot() before making requests.")

        url = f"{self._get_base_url().rstrip('/')}/{endpoint.strip().lstrip('/')}".rstrip("/")
        headers = {**self._get_auth_header(), **(additional_headers or {})}

        try:
            response = await self._client.request(method, url, headers=headers, params=params, json=json)
        except httpx.HTTPError as exc:
            self.logging.error("Request to %s failed: %s", url, exc)
            raise RemoteServiceError(service=self.get_engine_name(), message=f"Request to {url} failed: {exc}") from exc

        if raise_on_error and response.status_code >= 300:
            self.logging.error("Request to %s failed with status %d: %s", url, response.status_code, response.text[:500])
            raise RemoteServiceError(
                service=self.get_engine_name(),
                message=f"Request to {url} failed with status {response.status_code}",
                status_code=response.status_code,
                response_body=response.text,
            )
        return response
