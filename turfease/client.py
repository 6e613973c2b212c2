from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from functools import lru_cache
from typing import Any, Generic, ParamSpec, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from turfease import settings
from turfease.exceptions import ApiError, ServiceError
from turfease.retry import NO_RETRY, RetryPolicy
from turfease.storage import KeyValueStore, StorageKey

DataT = TypeVar("DataT")
P = ParamSpec("P")
R = TypeVar("R")

# ---------------------------------------------------------------------------
# Response envelope
# ---------------------------------------------------------------------------


class ApiEnvelope(BaseModel, Generic[DataT]):
    """``{success, message, data, ...}`` as returned by most backend routes."""

    model_config = ConfigDict(extra="allow")

    success: bool = True
    message: str | None = None
    data: DataT | None = None
    count: int | None = None
    total: int | None = None
    pages: int | None = None


_ENVELOPE_FIELDS = ("success", "message", "count", "total", "pages")


def parse_envelope(payload: Any, data_type: Any) -> ApiEnvelope:
    """
    Validate a reply against ``ApiEnvelope[data_type]``.

    Some routes answer with the bare resource instead of an envelope; in that
    case the whole payload is validated as ``data``.
    """
    envelope_type = ApiEnvelope[data_type]  # type: ignore[valid-type]
    if isinstance(payload, dict) and "data" in payload:
        return envelope_type.model_validate(payload)
    wrapper: dict[str, Any] = {"data": payload}
    if isinstance(payload, dict):
        wrapper.update({k: payload[k] for k in _ENVELOPE_FIELDS if k in payload})
    return envelope_type.model_validate(wrapper)


def parse_data(payload: Any, data_type: Any) -> Any:
    return TypeAdapter(data_type).validate_python(payload)


# ---------------------------------------------------------------------------
# Error conversion for the service layer
# ---------------------------------------------------------------------------

NETWORK_ERROR_MESSAGE = "Network error. Please check your connection."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."


def to_service_error(exc: Exception) -> ServiceError:
    if isinstance(exc, ServiceError):
        return exc
    if isinstance(exc, ApiError):
        message = exc.data.get("message") or exc.data.get("error") or exc.message
        return ServiceError(
            message or "An error occurred", status_code=exc.status_code, type=exc.type
        )
    if isinstance(exc, httpx.TransportError):
        return ServiceError(NETWORK_ERROR_MESSAGE)
    return ServiceError(UNEXPECTED_ERROR_MESSAGE)


def service_call(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Re-raise backend, transport and parsing failures as ``ServiceError``."""

    @functools.wraps(func)
    async def _wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await func(*args, **kwargs)
        except (ApiError, httpx.TransportError, ValidationError) as exc:
            raise to_service_error(exc) from exc

    return _wrapper


# ---------------------------------------------------------------------------
# ApiClient: thin async wrapper around the TurfEase REST API
# ---------------------------------------------------------------------------


@lru_cache(maxsize=8)
def _get_http_client(base_url: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(settings.HTTP_TIMEOUT),
        follow_redirects=True,
    )


class ApiClient:
    """
    JSON client for the backend. Adds the bearer token from ``store`` to every
    request and turns non-2xx replies into ``ApiError``.

    ``retry`` is the default policy; callers may pass their own per request.
    """

    def __init__(
        self,
        store: KeyValueStore,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        retry: RetryPolicy = NO_RETRY,
    ) -> None:
        self.store = store
        self.base_url = base_url or settings.API_BASE_URL
        self._http_client = http_client
        self.retry = retry
        logger.debug("API client initialized with base_url={}", self.base_url)

    @property
    def _client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return _get_http_client(self.base_url)

    async def auth_headers(self) -> dict[str, str]:
        token = await self.store.get(StorageKey.TOKEN)
        logger.debug("Auth token available: {}", bool(token))
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def handle_response(resp: httpx.Response) -> Any:
        content_type = resp.headers.get("content-type", "")
        data: Any
        if "application/json" in content_type:
            try:
                data = resp.json()
            except ValueError:
                data = {}
        else:
            data = {"message": resp.text} if resp.text else {}

        if resp.is_success:
            return data

        body = data if isinstance(data, dict) else {}
        message = (
            body.get("message")
            or body.get("error")
            or resp.reason_phrase
            or "Something went wrong"
        )
        raise ApiError(
            status_code=resp.status_code,
            message=message,
            type=body.get("type") or "GENERAL_ERROR",
            data=body,
        )

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        files: Any = None,
        data: dict[str, Any] | None = None,
        retry: RetryPolicy | None = None,
    ) -> Any:
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        policy = retry or self.retry

        async def _send() -> Any:
            headers = await self.auth_headers()
            if files is not None:
                # httpx sets the multipart boundary itself
                headers.pop("Content-Type")
            logger.debug("API request: {} {}", method, endpoint)
            try:
                resp = await self._client.request(
                    method,
                    endpoint,
                    json=json,
                    params=params,
                    files=files,
                    data=data,
                    headers=headers,
                )
            except httpx.TransportError as exc:
                logger.error("API request failed: {} {}: {!r}", method, endpoint, exc)
                raise
            logger.debug("API response: {} {} -> {}", method, endpoint, resp.status_code)
            return self.handle_response(resp)

        return await policy.run(_send)

    async def get(self, endpoint: str, **kwargs: Any) -> Any:
        return await self.request("GET", endpoint, **kwargs)

    async def post(self, endpoint: str, json: Any = None, **kwargs: Any) -> Any:
        return await self.request("POST", endpoint, json=json, **kwargs)

    async def put(self, endpoint: str, json: Any = None, **kwargs: Any) -> Any:
        return await self.request("PUT", endpoint, json=json, **kwargs)

    async def delete(self, endpoint: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", endpoint, **kwargs)
