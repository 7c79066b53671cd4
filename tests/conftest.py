import json
from unittest.mock import MagicMock

import httpx
import pytest

from chatvibe.remote.client import RemoteClient

BASE_URL = "http://backend.test"


@pytest.fixture
def fake_redis():
    """MagicMock redis whose get/set/delete are backed by a dict."""
    data = {}
    r = MagicMock()
    r.get.side_effect = lambda k: data.get(k)
    r.set.side_effect = lambda k, v, **kw: data.__setitem__(k, v)
    r.delete.side_effect = lambda *keys: sum(1 for k in keys if data.pop(k, None) is not None)
    r.data = data
    return r


class BackendStub:
    """
    Route table for httpx.MockTransport. Values are (status, json_body) or a
    callable(request) returning an httpx.Response (sync or async).
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def __call__(self, request: httpx.Request):
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, request.url.path, body))
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"code": "NOT_FOUND"})
        route = self.routes[key]
        if callable(route):
            return route(request)
        status, payload = route
        return httpx.Response(status, json=payload)

    def calls_to(self, method, path):
        return [c for c in self.calls if c[0] == method and c[1] == path]


@pytest.fixture
def backend():
    return BackendStub()


@pytest.fixture
def remote_factory():
    def make(stub):
        return RemoteClient(BASE_URL, transport=httpx.MockTransport(stub))
    return make
