# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.
"""Shared test fixtures for the Prove Identity backend.

Provides a mock httpx transport standing in for the Prove API, a
controllable clock for token expiry tests, and a fully wired
:class:`VerificationService` built on top of both.
"""

from __future__ import annotations

import json
from typing import Callable, Dict, List, Optional, Union

import httpx
import pytest

from app.prove.client import ProveClient
from app.prove.service import VerificationService

PROVE_TEST_URL = "https://prove.test"

TOKEN_RESPONSE = {"access_token": "access-1", "token_type": "Bearer", "expires_in": 3600}


# =========================================================================
# Mock transport for httpx
# =========================================================================


class MockTransport(httpx.AsyncBaseTransport):
    """Mock Prove API transport returning canned responses per path.

    Responses queued for a path are returned in order; the last one is
    repeated once the queue is down to a single entry.  Paths with
    nothing queued answer 500.
    """

    def __init__(self) -> None:
        self.responses: Dict[str, List[Union[httpx.Response, Exception]]] = {}
        self.requests: List[httpx.Request] = []

    def add_response(
        self,
        path: str,
        status_code: int = 200,
        json_data: Optional[Union[dict, list]] = None,
        content: bytes = b"",
    ) -> None:
        headers = {}
        if json_data is not None:
            content = json.dumps(json_data).encode()
            headers["content-type"] = "application/json"
        self.responses.setdefault(path, []).append(
            httpx.Response(status_code=status_code, content=content, headers=headers)
        )

    def add_error(self, path: str, error: Exception) -> None:
        self.responses.setdefault(path, []).append(error)

    def requests_for(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.responses.get(request.url.path)
        if not queue:
            return httpx.Response(500, content=b'{"message": "No mock response queued"}')
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =========================================================================
# Fixtures
# =========================================================================


@pytest.fixture
def transport() -> MockTransport:
    return MockTransport()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_prove_client(transport: MockTransport) -> Callable[..., ProveClient]:
    """Factory fixture: a ProveClient whose HTTP traffic goes to ``transport``."""

    def _make(**kwargs) -> ProveClient:
        http = httpx.AsyncClient(transport=transport, base_url=PROVE_TEST_URL)
        return ProveClient(http=http, **kwargs)

    return _make


@pytest.fixture
def prove_client(make_prove_client) -> ProveClient:
    return make_prove_client()


@pytest.fixture
def service(prove_client: ProveClient) -> VerificationService:
    return VerificationService(prove_client, "client-id", "client-secret")


@pytest.fixture
def token_ok(transport: MockTransport) -> MockTransport:
    """Queue a successful token exchange."""
    transport.add_response("/token", 200, TOKEN_RESPONSE)
    return transport
