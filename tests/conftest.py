"""
Shared test fixtures for whd-client tests.

This module provides:
- FakeWHD, a route table served through httpx.MockTransport
- A WHDClient wired to it with retry waits disabled
"""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest

from whd_client.integrations.whd_client import WHDClient
from whd_client.models.auth import AuthType, User

BASE_URL = "https://whd.example.com"
API = "/helpdesk/WebObjects/Helpdesk.woa/ra/"

Route = Union[Dict[str, Any], Callable[[httpx.Request], httpx.Response]]


class FakeWHD:
    """Minimal in-memory stand-in for a WHD server.

    Each route holds a queue of responses; the last one is repeated once
    the queue is drained.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Route]] = {}
        self.requests: List[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        status: int = 200,
        json_body: Any = None,
        text: Optional[str] = None,
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        spec = {"status": status, "json": json_body, "text": text,
                "content": content, "headers": headers}
        self.routes.setdefault((method, self._full(path)), []).append(spec)

    def add_handler(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes.setdefault((method, self._full(path)), []).append(handler)

    @staticmethod
    def _full(path: str) -> str:
        return path if path.startswith("/helpdesk/") else f"{API}{path}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"reason": f"no route for {request.url.path}"})

        route = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(route):
            return route(request)

        kwargs = {"headers": route["headers"]}
        if route["json"] is not None:
            kwargs["json"] = route["json"]
        elif route["text"] is not None:
            kwargs["text"] = route["text"]
        elif route["content"] is not None:
            kwargs["content"] = route["content"]
        return httpx.Response(route["status"], **kwargs)

    def last(self, method: Optional[str] = None) -> httpx.Request:
        requests = [r for r in self.requests if method is None or r.method == method]
        return requests[-1]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content)


@pytest.fixture
def whd() -> FakeWHD:
    return FakeWHD()


@pytest.fixture
def api_user() -> User:
    return User(password="secret-key", type=AuthType.API_KEY)


@pytest.fixture
async def client(whd, api_user):
    client = WHDClient(
        BASE_URL,
        api_user,
        retry_max=2,
        retry_wait_min=0,
        retry_wait_max=0,
        transport=httpx.MockTransport(whd.handler),
    )
    yield client
    await client.close()
