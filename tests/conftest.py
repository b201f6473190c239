import json
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Callable, Dict, List, Optional, Tuple
from unittest.mock import MagicMock

import pytest
import requests

from resi_bridge.config import BridgeConfig, MemoryConfigStore
from resi_bridge.connection import ResiConnection
from resi_bridge.host import HostState
from resi_bridge.rate_limiter import RateLimiter

API_URL = "https://api.test/api/v3"


def make_response(
    status: int = 200,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    url: str = API_URL,
) -> requests.Response:
    """Build a real ``requests.Response`` the way the transport would hand it back."""
    response = requests.Response()
    response.status_code = status
    response._content = b"" if body is None else json.dumps(body).encode("utf-8")
    response.encoding = "utf-8"
    response.headers.update(headers or {})
    response.url = url
    try:
        response.reason = HTTPStatus(status).phrase
    except ValueError:
        response.reason = "Unknown"
    return response


def token_response(token: str = "tok-1", expires_in: int = 3600) -> requests.Response:
    return make_response(200, {"access_token": token, "expires_in": expires_in})


def schedule_body(schedule_id: str, *statuses: str) -> Dict[str, Any]:
    return {
        "id": schedule_id,
        "destinations": [
            {"id": f"dest-{i}", "name": f"Destination {i}", "type": "YOUTUBE", "status": status}
            for i, status in enumerate(statuses)
        ],
        "actions": {"stop": {"method": "POST", "url": f"{API_URL}/schedules/{schedule_id}/stop"}},
    }


@dataclass
class Call:
    method: str
    path: str
    headers: Dict[str, str]
    json: Any
    params: Any


class FakeHttp:
    """Stands in for ``requests.Session``; answers queued responses per (method, path).

    The last queued answer for a route is repeated once the queue runs dry.
    Queued items may be responses, exceptions to raise, or callables.
    """

    def __init__(self, base_url: str = API_URL):
        self.base_url = base_url.rstrip("/") + "/"
        self.routes: Dict[Tuple[str, str], List[Any]] = {}
        self.calls: List[Call] = []
        self.closed = False

    def add(self, method: str, path: str, *answers: Any) -> "FakeHttp":
        self.routes.setdefault((method, path), []).extend(answers)
        return self

    def calls_to(self, method: str, path: str) -> List[Call]:
        return [call for call in self.calls if call.method == method and call.path == path]

    def request(self, method, url, headers=None, json=None, params=None, timeout=None):
        path = url[len(self.base_url):] if url.startswith(self.base_url) else url
        self.calls.append(Call(method, path, dict(headers or {}), json, params))
        queue = self.routes.get((method, path))
        if not queue:
            raise AssertionError(f"unexpected request {method} {path}")
        answer = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(answer, Exception):
            raise answer
        if callable(answer) and not isinstance(answer, requests.Response):
            answer = answer()
        return answer

    def close(self):
        self.closed = True


@pytest.fixture
def config() -> BridgeConfig:
    return BridgeConfig(
        client_id="client-id",
        client_secret="client-secret",
        api_base_url="https://api.test/api",
        api_version="v3",
    )


@pytest.fixture
def http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture
def store() -> MemoryConfigStore:
    return MemoryConfigStore()


@pytest.fixture
def host() -> HostState:
    return HostState()


@pytest.fixture
def scheduler() -> MagicMock:
    scheduler = MagicMock()
    scheduler.running = True
    return scheduler


@pytest.fixture
def limiter() -> RateLimiter:
    return RateLimiter(limit=1000, window=60.0)


@pytest.fixture
def connection(config, store, host, http, scheduler, limiter) -> ResiConnection:
    return ResiConnection(config, store, host, http=http, limiter=limiter, scheduler=scheduler)


@pytest.fixture
def authed(connection, http) -> Callable:
    """Returns a coroutine function that authenticates the connection once."""
    http.add("POST", "oauth/token", token_response())

    async def _authenticate():
        await connection.sessions.authenticate()
        return connection

    return _authenticate
