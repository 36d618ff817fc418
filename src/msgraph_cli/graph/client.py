from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from msgraph_cli.graph.errors import ErrorCategory, GraphAPIError, GraphCliError
from msgraph_cli.graph.requests import GraphRequest
from msgraph_cli.utils import get_logger


logger = get_logger(__name__)


TokenProvider = Callable[[], Awaitable[str]]

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"


@dataclass(slots=True)
class GraphClientConfig:
    base_url: str = GRAPH_BASE_URL
    user_agent: str = "msgraph-cli-python"
    connect_timeout: float = 10.0
    read_timeout: float = 60.0


def _prepare_relative_path(path: str) -> str:
    trimmed = path.strip()
    if not trimmed.startswith("/"):
        trimmed = "/" + trimmed
    if trimmed != "/" and trimmed.endswith("/"):
        trimmed = trimmed.rstrip("/")
    return trimmed


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    content_type = response.headers.get("Content-Type", "")
    try:
        if "json" in content_type:
            return response.json()
        return json.loads(response.text)
    except ValueError:
        return response.text


def response_values(payload: Any) -> list[dict[str, Any]]:
    """Items of a Graph collection response (the `value` array)."""

    if isinstance(payload, dict):
        items = payload.get("value")
        if isinstance(items, list):
            return [item for item in items if isinstance(item, dict)]
    return []


def _map_response_to_error(response: httpx.Response) -> GraphAPIError:
    status = response.status_code
    body = _decode_body(response)

    error_info = body.get("error") if isinstance(body, dict) else None
    code = None
    message = None
    if isinstance(error_info, dict):
        code = error_info.get("code")
        message = error_info.get("message")

    message = message or response.text or f"Graph request failed with status {status}"
    category = ErrorCategory.REMOTE
    if status == 401:
        category = ErrorCategory.AUTHENTICATION
    elif status in {400, 404, 409, 422}:
        category = ErrorCategory.VALIDATION

    return GraphAPIError(
        message=str(message),
        code=code if isinstance(code, str) else None,
        status_code=status,
        body=body,
        category=category,
    )


class GraphClient:
    """Issues one authenticated Microsoft Graph request per call.

    The bearer token is fetched from ``token_provider`` before the request is
    built, so authentication problems surface before any network traffic.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        config: GraphClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token_provider = token_provider
        self._config = config or GraphClientConfig()
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._config.base_url.rstrip("/")

    async def __aenter__(self) -> "GraphClient":
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.close()

    async def execute(self, request: GraphRequest) -> Any:
        """Send ``request`` and return the decoded JSON body (``None`` for 204)."""

        response = await self.request(
            request.method,
            request.url,
            params=request.params,
            json_body=request.body,
            headers=request.headers,
        )
        return _decode_body(response)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        token = await self._token_provider()
        url = self._absolute_url(path)
        merged_headers = {"Authorization": f"Bearer {token}"}
        if headers:
            merged_headers.update(headers)

        client = self._get_http_client()
        logger.debug("Graph request", method=method.upper(), url=url)
        try:
            response = await client.request(
                method.upper(),
                url,
                params=params,
                json=json_body,
                headers=merged_headers,
            )
        except httpx.TimeoutException as exc:
            raise self._network_error(
                "Network timeout communicating with Microsoft Graph", method, url
            ) from exc
        except httpx.RequestError as exc:
            raise self._network_error(
                f"Network error communicating with Microsoft Graph: {exc}", method, url
            ) from exc

        logger.debug(
            "Graph response",
            method=method.upper(),
            url=url,
            status_code=response.status_code,
        )
        if response.status_code >= 400:
            error = _map_response_to_error(response)
            error.request_method = method.upper()
            error.request_url = str(response.request.url)
            raise error
        return response

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # ------------------------------------------------------------- Internals

    def _network_error(self, message: str, method: str, url: str) -> GraphCliError:
        error = GraphAPIError(
            message=message,
            code="NetworkError",
            category=ErrorCategory.NETWORK,
        )
        error.request_method = method.upper()
        error.request_url = url
        return error

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                headers={"User-Agent": self._config.user_agent},
                timeout=httpx.Timeout(
                    self._config.read_timeout,
                    connect=self._config.connect_timeout,
                ),
                transport=self._transport,
            )
        return self._http_client

    def _absolute_url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}{_prepare_relative_path(path)}"


__all__ = [
    "GRAPH_BASE_URL",
    "GraphClient",
    "GraphClientConfig",
    "TokenProvider",
    "response_values",
]
