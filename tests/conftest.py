"""
Shared pytest fixtures available to every test file automatically.
No imports needed in test files; pytest discovers this by convention.

The TurfEase backend is replaced by a FastAPI app (``FakeBackend``) that
records every request and answers with canned responses, served in-process
through ``httpx.ASGITransport``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from turfease.client import ApiClient
from turfease.retry import RetryPolicy, fixed_backoff
from turfease.sdk import TurfEase
from turfease.storage import MemoryStore

BASE_URL = "http://testserver/api"

# ---------------------------------------------------------------------------
# Fake backend
# ---------------------------------------------------------------------------


@dataclass
class RecordedRequest:
    method: str
    path: str
    params: dict[str, str]
    headers: dict[str, str]
    body: bytes
    json: Any = None

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")


@dataclass
class FakeBackend:
    """
    Catch-all ASGI app. Register replies with ``reply(method, path, *responses)``.

    Each reply is a JSON-able value (sent with 200) or a ready ``Response``.
    Replies are consumed in order; the last one keeps answering. Unregistered
    routes get a 404 envelope.
    """

    app: FastAPI = field(default_factory=FastAPI)
    requests: list[RecordedRequest] = field(default_factory=list)
    replies: dict[tuple[str, str], list[Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        @self.app.api_route(
            "/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"]
        )
        async def _catch_all(path: str, request: Request):
            body = await request.body()
            recorded = RecordedRequest(
                method=request.method,
                path=f"/{path}",
                params=dict(request.query_params),
                headers={k.lower(): v for k, v in request.headers.items()},
                body=body,
            )
            if "application/json" in recorded.content_type and body:
                recorded.json = json.loads(body)
            self.requests.append(recorded)
            return self._next_reply(request.method, recorded.path)

    def reply(self, method: str, path: str, *responses: Any) -> None:
        self.replies[(method.upper(), path)] = list(responses)

    def _next_reply(self, method: str, path: str) -> Response:
        queue = self.replies.get((method, path))
        if not queue:
            return JSONResponse(
                {"success": False, "message": "Route not found"}, status_code=404
            )
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(reply, Response):
            return reply
        return JSONResponse(reply)

    def calls(self, method: str, path: str) -> list[RecordedRequest]:
        return [r for r in self.requests if r.method == method and r.path == path]

    @property
    def last(self) -> RecordedRequest:
        return self.requests[-1]


def error_reply(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        {"success": False, "message": message, **extra}, status_code=status_code
    )


# ---------------------------------------------------------------------------
# Client fixtures
# ---------------------------------------------------------------------------

FAST_RETRY = RetryPolicy(max_attempts=3, backoff=fixed_backoff(0))


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
async def http_client(backend):
    transport = httpx.ASGITransport(app=backend.app)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as client:
        yield client


@pytest.fixture()
def api(store, http_client) -> ApiClient:
    return ApiClient(store, base_url=BASE_URL, http_client=http_client)


@pytest.fixture()
def sdk(store, http_client) -> TurfEase:
    """Every service wired to the fake backend; chat retries without sleeping."""
    return TurfEase(store, base_url=BASE_URL, http_client=http_client, chat_retry=FAST_RETRY)


@pytest.fixture()
def offline_client_factory(store):
    """
    ApiClient whose transport fails before reaching any server.
    Pass the httpx exception class to raise (default ``httpx.ConnectError``).
    """

    def _make(exc_type: type[httpx.TransportError] = httpx.ConnectError) -> ApiClient:
        def _handler(request: httpx.Request) -> httpx.Response:
            raise exc_type("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(_handler), base_url=BASE_URL)
        return ApiClient(store, base_url=BASE_URL, http_client=client)

    return _make
