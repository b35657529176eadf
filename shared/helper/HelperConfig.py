"""Central configuration helper for the message indexing pipeline."""

import os
from typing import Mapping

from shared.errors import ConfigurationError
from shared.logging.logging_setup import ColorLogger


class HelperConfig:
    """Central configuration helper. Reads all settings from environment variables.

    The environment mapping can be injected (e.g. in tests); by default the
    live process environment is used, so values changed after construction
    are still picked up.
    """

    def __init__(self, logger: ColorLogger, environ: Mapping[str, str] | None = None) -> None:
        self._logger = logger
        self._environ = environ

    def _read_raw(self, key: str) -> str | None:
        source = self._environ if self._environ is not None else os.environ
        raw = source.get(key.upper())
        # empty string → None
        if raw is None or not raw.strip():
            return None
        return raw.strip()

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (str | None): Fallback value if the variable is not set.

        Returns:
            str: The resolved value.

        Raises:
            ConfigurationError: If the variable is not set and no default is provided.
        """
        val = self._read_raw(key)
        if val is None and default is None:
            raise ConfigurationError(f"Environment variable '{key.upper()}' is not set.", {"config_key": key.upper()})
        return val if val is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (float | int | None): Fallback value if the variable is not set.

        Returns:
            float | int: The resolved numeric value.

        Raises:
            ConfigurationError: If the variable is not set and no default is provided,
                or if the value cannot be parsed as a number.
        """
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise ConfigurationError(f"Environment variable '{key.upper()}' is not set.", {"config_key": key.upper()})
            return default
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ConfigurationError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean environment variable ("true", "1" and "yes" are truthy)."""
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise ConfigurationError(f"Environment variable '{key.upper()}' is not set.", {"config_key": key.upper()})
            return default
        return raw.lower() in ("true", "1", "yes")

    def get_choice_val(self, key: str, choices: list[str], default: str) -> str:
        """Read an environment variable restricted to a fixed set of values.

        Any unset or unknown value resolves to the default; the comparison is
        case-insensitive.

        Args:
            key (str): Environment variable name (case-insensitive).
            choices (list[str]): Accepted lowercase values.
            default (str): Value used when the variable is unset or not a valid choice.

        Returns:
            str: One of choices.
        """
        raw = self._read_raw(key)
        if raw is None:
            return default
        val = raw.lower()
        if val not in choices:
            self._logger.debug("Unknown value %r for %s, falling back to %r.", raw, key.upper(), default)
            return default
        return val

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a list environment variable in the form "[elem1,elem2,...]".

        Args:
            key (str): Environment variable name (case-insensitive).
            default (list[str] | None): Fallback value if the variable is not set.
            separator (str): The delimiter between elements.
            element_type (type): The type to which each element should be cast.

        Returns:
            list: The resolved list of elements.

        Raises:
            ConfigurationError: If the variable is unset without default, malformed,
                or contains elements that cannot be cast.
        """
        raw_val = self._read_raw(key)
        if raw_val is None:
            if default is None:
                raise ConfigurationError(f"Environment variable '{key.upper()}' is not set.", {"config_key": key.upper()})
            return default
        if not raw_val.startswith("[") or not raw_val.endswith("]"):
            raise ConfigurationError(f"Environment variable '{key.upper()}' must be in the format '[elem1{separator}elem2{separator}...]'. Got: '{raw_val}'")
        elements = [v.strip() for v in raw_val[1:-1].split(separator) if v.strip()]
        try:
            return [element_type(elem) for elem in elements]
        except ValueError as e:
            raise ConfigurationError(f"Environment variable '{key.upper()}' contains invalid elements: {e}. Type set to {element_type.__name__}. Got: '{raw_val}'")

    def get_logger(self) -> ColorLogger:
        """Return the application logger.

        Returns:
            ColorLogger: The process logger; its methods accept color=.
        """
        return self._logger
