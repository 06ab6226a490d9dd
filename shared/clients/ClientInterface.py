from abc import ABC, abstractmethod

import httpx
from httpx._types import QueryParamTypes, RequestContent
from typing import Any
from shared.models.config import EnvConfig
from shared.models.errors import ApiRequestError

from shared.helper.HelperConfig import HelperConfig


class ClientInterface(ABC):
    """Base of every backend client: env-driven config, httpx lifecycle and request helpers.

    Configuration keys are namespaced as {CLIENT_TYPE}_{ENGINE}_{KEY}, e.g.
    DMS_DOCUMIND_BASE_URL. The timeout is shared per client type ({CLIENT_TYPE}_TIMEOUT).
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
        Reads every key of _get_required_config() once.

        Raises:
            ValueError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """E.g. "dms" or "llm"."""
        pass

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """E.g. "Documind" or "Ollama"."""
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        return f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Reads a client-scoped configuration value, e.g. raw_key "BASE_URL" of the
        Documind DMS client reads DMS_DOCUMIND_BASE_URL.

        Args:
            raw_key (str): Key without the client prefix.
            default (Any): Returned when the key is not set; None makes the key required.
            val_type (str): "string", "number", "bool" or "list".
        """
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        if val_type not in readers:
            raise ValueError(
                f"Unsupported config value type '{val_type}' for env key '{raw_key}' "
                f"in {self.get_client_type().upper()} client '{self.get_engine_name()}'."
            )
        return readers[val_type](self._get_config_key_name(raw_key), default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Auth headers for the backend; empty when no API key is configured."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialise the HTTP client.

        Args:
            transport: Optional transport override (e.g. httpx.MockTransport in tests).
        """
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        json: dict | list | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send an HTTP request to the client backend.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, ...).
            content: Raw body; the caller passes its Content-Type via additional_headers.
            json: JSON body; ignored when content is given.
            params: URL query parameters.
            endpoint: Path appended to the base URL (leading slash optional).
            additional_headers: Extra headers that override the defaults.
            raise_on_error: Raise ApiRequestError on a non-2xx status.

        Raises:
            RuntimeError: If the client is not initialised.
            ApiRequestError: If the response is non-2xx and raise_on_error is True.
            httpx.HTTPError: If the request cannot be sent (connect error, timeout, ...).
        """
        if self._client is None:
            raise RuntimeError("HTTP client not initialised. Call boot() before making requests.")

        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""
        url = f"{self._get_base_url().rstrip('/')}{endpoint}"
        headers = {**self._get_auth_header(), **(additional_headers or {})}

        if content is not None:
            response = await self._client.request(method, url, headers=headers, params=params, content=content)
        else:
            response = await self._client.request(method, url, headers=headers, params=params, json=json)

        if raise_on_error and not response.is_success:
            self.logging.error("%s %s failed with status %d: %s", method, url, response.status_code, response.text[:200])
            raise ApiRequestError(
                f"{method} {url} failed with status {response.status_code}",
                status_code=response.status_code,
                url=url,
                body=response.text,
            )
        return response

    async def do_request_json(self, method: str = "GET", endpoint: str = "", allow_empty: bool = False, **kwargs) -> Any:
        """Send a request that must succeed and return its decoded JSON body.

        Raises:
            ValueError: If the body is not JSON, or is empty and allow_empty is False.
        """
        response = await self.do_request(method=method, endpoint=endpoint, raise_on_error=True, **kwargs)
        if not response.content:
            if allow_empty:
                return None
            raise ValueError(f"{method} {endpoint} answered with an empty body.")
        return response.json()
