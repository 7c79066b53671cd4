"""
Async client for the remote analysis backend.

Stateless request/response wrappers; the only state is the cookie jar carried
by the underlying httpx.AsyncClient. Every failure leaves here as one of
TransportError / DomainError.
"""
from __future__ import annotations

import time
from typing import Any, List, Optional

import httpx
from pydantic import ValidationError as SchemaError

from chatvibe.settings import settings
from chatvibe.core.errors import DomainError, TransportError
from chatvibe.core.messages import normalize_error_code
from chatvibe.observability.logging import log
from chatvibe.remote.schemas import (
    AnalysisResult,
    AnalyzeRequest,
    AuthStatusResponse,
    Block,
    Chat,
    LogoutResponse,
    PasswordResponse,
    SendCodeResponse,
    SignInResponse,
)

# Mutating calls carry no client-side timeout and no cancellation.
NO_TIMEOUT = None


def extract_error_code(data: Any) -> Optional[str]:
    """Backend puts the error code in data.code, data.error or data.message."""
    if not isinstance(data, dict):
        return None
    for k in ("code", "error", "message"):
        code = normalize_error_code(data.get(k))
        if code:
            return code
    return None


def normalize_analysis(data: Any) -> AnalysisResult:
    """Accepts {analysis}, {blocks: [...]} or a bare block list."""
    try:
        if isinstance(data, list):
            return AnalysisResult(blocks=[Block.model_validate(b) for b in data])
        if isinstance(data, dict):
            if isinstance(data.get("blocks"), list):
                return AnalysisResult(blocks=[Block.model_validate(b) for b in data["blocks"]])
            if isinstance(data.get("analysis"), str):
                return AnalysisResult(analysis=data["analysis"])
    except SchemaError as e:
        raise TransportError("malformed analysis block") from e
    raise TransportError("unexpected analyze response shape")


def normalize_possible(data: Any) -> bool:
    if isinstance(data, bool):
        return data
    if isinstance(data, dict) and isinstance(data.get("possible"), bool):
        return data["possible"]
    raise TransportError("unexpected analyze/possible response shape")


class RemoteClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.REMOTE_BASE_URL).rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, *, json: Any = None, timeout: Any = NO_TIMEOUT) -> Any:
        start = time.time()
        try:
            resp = await self._client.request(method, path, json=json, timeout=timeout)
        except httpx.HTTPError as e:
            log(
                event="remote_call_failed",
                method=method,
                path=path,
                errorType=type(e).__name__,
                error=str(e)[:300],
                elapsedMs=int((time.time() - start) * 1000),
            )
            raise TransportError(f"{type(e).__name__}: {e}") from e

        elapsed_ms = int((time.time() - start) * 1000)
        try:
            data = resp.json()
        except ValueError:
            data = None

        if 200 <= resp.status_code < 300:
            log(event="remote_call", method=method, path=path, statusCode=resp.status_code, elapsedMs=elapsed_ms)
            return data

        if not isinstance(data, dict):
            log(event="remote_call_failed", method=method, path=path, statusCode=resp.status_code,
                elapsedMs=elapsed_ms, responseText=(resp.text or "")[:300])
            raise TransportError(f"non_2xx:{resp.status_code}", status=resp.status_code)

        code = extract_error_code(data)
        if code is None and resp.status_code == 401:
            code = "NOT_AUTHORIZED"
        log(event="remote_call_failed", method=method, path=path, statusCode=resp.status_code,
            elapsedMs=elapsed_ms, errorCode=code or "")
        raise DomainError(code, status=resp.status_code)

    @staticmethod
    def _parse(model, data):
        try:
            return model.model_validate(data)
        except SchemaError as e:
            raise TransportError(f"unexpected response for {model.__name__}") from e

    # ---- auth ----

    async def auth_status(self) -> AuthStatusResponse:
        data = await self._request("GET", "/auth/status", timeout=settings.REMOTE_READ_TIMEOUT_SEC)
        return self._parse(AuthStatusResponse, data)

    async def send_code(self, phone: str) -> SendCodeResponse:
        data = await self._request("POST", "/auth/send-code", json={"phone": phone})
        return self._parse(SendCodeResponse, data or {})

    async def sign_in(self, phone: str, code: str) -> SignInResponse:
        data = await self._request("POST", "/auth/sign-in", json={"phone": phone, "code": code})
        return self._parse(SignInResponse, data or {})

    async def submit_password(self, password: str) -> PasswordResponse:
        data = await self._request("POST", "/auth/password", json={"password": password})
        return self._parse(PasswordResponse, data or {})

    async def logout(self) -> LogoutResponse:
        data = await self._request("POST", "/api/auth/logout")
        return self._parse(LogoutResponse, data or {})

    # ---- chats / analysis ----

    async def get_chats(self) -> List[Chat]:
        data = await self._request("GET", "/chats", timeout=settings.REMOTE_READ_TIMEOUT_SEC)
        if not isinstance(data, list):
            raise TransportError("unexpected chats response shape")
        return [self._parse(Chat, c) for c in data]

    async def analyze_possible(self, chat_id: int) -> bool:
        data = await self._request("GET", f"/chats/{chat_id}/analyze/possible", timeout=settings.REMOTE_READ_TIMEOUT_SEC)
        return normalize_possible(data)

    async def analyze(self, chat_id: int, type: str, tone: Optional[str] = None, language: Optional[str] = None) -> AnalysisResult:
        body = AnalyzeRequest(type=type, tone=tone, language=language).model_dump(exclude_none=True)
        data = await self._request("POST", f"/chats/{chat_id}/analyze", json=body)
        return normalize_analysis(data)
