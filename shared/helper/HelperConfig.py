"""
Environment backed settings for the cloud RAG backend.

Every setting is an upper case environment variable. Blank values count as
unset, so ``FOO=`` in a compose file falls back to the default like a missing
``FOO`` would. A setting without a default is required: reading it while it is
unset raises ValueError, which stops the process at boot rather than mid-sync.
"""

import logging
import os

_TRUE_WORDS = ("true", "1", "yes", "on")


class HelperConfig:
    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    ##########################################
    ################# RAW ####################
    ##########################################

    def _read(self, key: str) -> str | None:
        raw = os.getenv(key.upper())
        if raw is None or not raw.strip():
            return None
        return raw.strip()

    def _fallback(self, key: str, default):
        if default is None:
            raise ValueError(f"Environment variable '{key.upper()}' is not set.")
        return default

    ##########################################
    ################ TYPED ###################
    ##########################################

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """
        Read a string setting.

        Raises:
            ValueError: If the variable is unset and no default is given.
        """
        raw = self._read(key)
        return raw if raw is not None else self._fallback(key, default)

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """
        Read a numeric setting. Values with a decimal point become floats.

        Raises:
            ValueError: If the variable is unset without default or is not a number.
        """
        raw = self._read(key)
        if raw is None:
            return self._fallback(key, default)
        try:
            return float(raw) if "." in raw else int(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_int_val(self, key: str, default: int | None = None, minimum: int | None = None) -> int:
        """
        Read a whole number setting such as a batch size or a per-run cap.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (int | None): Fallback value if the variable is unset.
            minimum (int | None): Smallest accepted value, checked on configured values only.

        Raises:
            ValueError: If the value is missing, fractional or below ``minimum``.
        """
        value = self.get_number_val(key, default=default)
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"Environment variable '{key.upper()}' must be a whole number: '{value}'.")
        value = int(value)
        if minimum is not None and value < minimum:
            raise ValueError(f"Environment variable '{key.upper()}' must be at least {minimum}, got {value}.")
        return value

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """
        Read a flag. "true", "1", "yes" and "on" are true, everything else is false.
        """
        raw = self._read(key)
        if raw is None:
            return self._fallback(key, default)
        return raw.lower() in _TRUE_WORDS

    def get_path_val(self, key: str, default: str | None = None, create: bool = False) -> str:
        """
        Read a directory setting and return it as an absolute path.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (str | None): Fallback path if the variable is unset.
            create (bool): Create the directory (and parents) when it does not exist.

        Returns:
            str: The absolute directory path.
        """
        path = os.path.abspath(os.path.expanduser(self.get_string_val(key, default=default)))
        if create and not os.path.isdir(path):
            self._logger.info("Creating directory %s for %s", path, key.upper())
            os.makedirs(path, exist_ok=True)
        return path

    def get_logger(self) -> logging.Logger:
        return self._logger
