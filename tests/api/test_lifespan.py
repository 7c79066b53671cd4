from fastapi.testclient import TestClient

from chatvibe.api.auth import require_api_key
from chatvibe.core import runtime as runtime_mod
from chatvibe.core.runtime import reset_runtimes
from chatvibe.main import app


def test_shutdown_closes_device_clients():
    reset_runtimes()
    app.dependency_overrides[require_api_key] = lambda: None
    try:
        with TestClient(app) as c:
            r = c.post("/auth/country", json={"code": "380"}, headers={"x-install-id": "dev-9"})
            assert r.status_code == 200
            rt = runtime_mod._RUNTIMES["dev-9"]
            assert not rt.remote._client.is_closed

        assert rt.remote._client.is_closed
        assert len(runtime_mod._RUNTIMES) == 0
    finally:
        app.dependency_overrides = {}
        reset_runtimes()
