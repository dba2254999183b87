from abc import ABC, abstractmethod
from typing import Any

import httpx
from httpx._types import QueryParamTypes, RequestContent, RequestData, RequestFiles

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.errors import ClientResponseError


class ClientInterface(ABC):
    """
    Base of every HTTP backed capability client (storage, llm, embed, rag).

    A client is identified by its type and engine, e.g. ("embed", "ollama").
    Both name its settings: ``<TYPE>_<ENGINE>_<KEY>`` for engine specific ones
    and ``<TYPE>_<KEY>`` for the ones every engine of a type shares, such as
    ``STORAGE_TIMEOUT``. Required settings are checked on construction so a
    misconfigured engine fails at boot.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)

        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    def validate_full_configuration(self) -> None:
        """
        Raises:
            ValueError: If a required setting of this engine is unset or malformed.
        """
        for config in self._get_required_config():
            self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ############### IDENTITY #################
    ##########################################

    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """Capability this client provides, e.g. "storage"."""
        pass

    @abstractmethod
    def _get_engine_name(self) -> str:
        """Backend behind the capability, e.g. "Dropbox"."""
        pass

    ##########################################
    ################ CONFIG ##################
    ##########################################

    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """Settings this engine reads, keyed without the type/engine prefix."""
        pass

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Read one engine specific setting.

        Args:
            raw_key (str): Key without prefix, e.g. "BASE_URL" for LLM_OLLAMA_BASE_URL.
            default (Any): Fallback when unset. None makes the setting required.
            val_type (str): "string", "number" or "bool".

        Raises:
            ValueError: If the setting is missing or the type is unknown.
        """
        key = f"{self.get_client_type()}_{self.get_engine_name()}_{raw_key}".upper()
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
        }
        if val_type not in readers:
            raise ValueError(f"Unsupported config value type '{val_type}' for {key}.")
        return readers[val_type](key, default=default)

    ##########################################
    ############### BACKEND ##################
    ##########################################

    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Headers sent with every request. Clients that authenticate per call
        with OAuth bearer tokens return {} and pass the token via ``additional_headers``.
        """
        pass

    @abstractmethod
    def _get_base_url(self) -> str:
        """Root URL relative endpoints are resolved against."""
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        pass

    def _make_error(self, response: httpx.Response, action: str) -> Exception:
        """Build the exception raised for a failed response. Subclasses return richer types."""
        return ClientResponseError(
            "%s %s failed with status %d" % (self._get_engine_name(), action, response.status_code),
            status_code=response.status_code,
        )

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        """
        Raise the error built by ``_make_error`` for any non-2xx response.

        Args:
            response (httpx.Response): The backend response.
            action (str): What was attempted, used in messages (e.g. "list files").
        """
        if response.status_code < 300:
            return
        self.logging.debug(
            "%s %s failed with status %d: %s",
            self.get_engine_name(), action, response.status_code, response.text[:300],
        )
        raise self._make_error(response, action)

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_healthcheck(self) -> httpx.Response:
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        data: RequestData | None = None,
        files: RequestFiles | None = None,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        url: str | None = None,
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """
        Send one request to the backend.

        At most one body is sent, picked in the order content, data, files, json.
        httpx derives the Content-Type from it, so none is set here.

        Args:
            method: HTTP verb.
            content: Raw body bytes.
            data: Form fields.
            files: Multipart files.
            json: JSON body.
            params: Query parameters.
            endpoint: Path below the base URL.
            url: Absolute URL used instead of base URL + endpoint. Needed for
                OAuth token hosts, content hosts and server issued next-page links.
            additional_headers: Headers merged over the auth header.
            raise_on_error: Raise via ``_raise_for_status`` on a non-2xx response.

        Raises:
            RuntimeError: If ``boot()`` has not been awaited.
            ClientResponseError: On a non-2xx response when ``raise_on_error`` is set.
        """
        if self._client is None:
            raise RuntimeError(f"{self.get_client_type()} client '{self.get_engine_name()}' is not booted.")

        if url is None:
            path = endpoint.strip().lstrip("/")
            url = self._get_base_url().rstrip("/") + (f"/{path}" if path else "")

        headers = {**self._get_auth_header(), **(additional_headers or {})}
        body: dict = {}
        for name, value in (("content", content), ("data", data), ("files", files), ("json", json)):
            if value is not None:
                body[name] = value
                break

        response = await self._client.request(method, url, headers=headers, params=params, timeout=self.timeout, **body)

        if raise_on_error:
            self._raise_for_status(response, f"{method} {url}")
        return response
