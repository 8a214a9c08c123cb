"""Shared fixtures: a fake Procore API served through httpx.MockTransport."""

import json
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import patch

import httpx
import pytest

from procore_mcp.core.context import ExecutionContext

_RealAsyncClient = httpx.AsyncClient


class FakeProcore:
    """Records outbound requests and answers them from canned routes."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self._routes: Dict[Tuple[str, str], Tuple[int, Any, Optional[str], Optional[bytes]]] = {}
        self._error: Optional[Exception] = None

    def respond(
        self,
        method: str,
        path: str,
        status: int = 200,
        json_body: Any = None,
        text: Optional[str] = None,
        content: Optional[bytes] = None,
    ) -> None:
        self._routes[(method, path)] = (status, json_body, text, content)

    def fail_with(self, error: Exception) -> None:
        self._error = error

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self._error is not None:
            raise self._error
        for (method, path), (status, json_body, text, content) in self._routes.items():
            if request.method == method and request.url.path.endswith(path):
                if content is not None:
                    return httpx.Response(status, content=content)
                if text is not None:
                    return httpx.Response(status, text=text)
                return httpx.Response(status, json=json_body)
        return httpx.Response(404, text="no route")

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last_request.content)


@pytest.fixture
def procore_api():
    fake = FakeProcore()

    def make_client(*args: Any, **kwargs: Any) -> httpx.AsyncClient:
        return _RealAsyncClient(transport=httpx.MockTransport(fake.handler))

    with patch("procore_mcp.core.procore_client.httpx.AsyncClient", side_effect=make_client):
        yield fake


@pytest.fixture
def context() -> ExecutionContext:
    return ExecutionContext(bearer_token="test-token", company_id="4242")
