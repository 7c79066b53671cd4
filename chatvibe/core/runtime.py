"""
Per-device wiring. One ClientRuntime per install id holds that device's
session store, auth flow, lifecycle observer, job controller and UI feed.
"""
from __future__ import annotations

import asyncio
from collections import OrderedDict
from typing import Dict, List, Optional

from chatvibe.core import auth_machine as am
from chatvibe.core.auth_flow import AuthFlow
from chatvibe.core.bus import SESSION_EXPIRED, EventBus
from chatvibe.core.chats import filter_chats
from chatvibe.core.errors import ChatVibeError, DomainError
from chatvibe.core.jobs import AnalysisJobController
from chatvibe.core.lifecycle import LifecycleObserver
from chatvibe.core.ui_feed import UiFeed
from chatvibe.notify.notifier import Notifier, QueueNotifier
from chatvibe.observability.logging import log
from chatvibe.remote.client import RemoteClient
from chatvibe.remote.schemas import Chat
from chatvibe.settings import settings
from chatvibe.store.marker_store import MarkerStore
from chatvibe.store.session_store import SessionStore


class ClientRuntime:
    def __init__(
        self,
        install_id: str,
        *,
        remote: Optional[RemoteClient] = None,
        markers: Optional[MarkerStore] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.install_id = install_id
        self.remote = remote or RemoteClient()
        self.markers = markers or MarkerStore(install_id)
        self.bus = EventBus()
        self.feed = UiFeed()
        self.store = SessionStore()
        self.auth = AuthFlow(self.store, self.remote, self.feed, install_id=install_id)
        self.lifecycle = LifecycleObserver(self.markers, self.bus, install_id=install_id)
        self.jobs = AnalysisJobController(
            self.remote,
            self.markers,
            self.lifecycle,
            self.bus,
            self.feed,
            notifier or QueueNotifier(),
            install_id=install_id,
            on_remote_error=self.report_remote_error,
        )
        self._chats: Dict[int, Chat] = {}
        self._expiry_tasks = set()
        self.bus.subscribe(SESSION_EXPIRED, self._on_session_expired)

    async def ensure_checked(self) -> None:
        """Startup /auth/status check; runs until it has settled once."""
        if not self.store.state.checked:
            await self.auth.check_status()

    # ---- session expiry ----

    def report_remote_error(self, err: ChatVibeError) -> None:
        if isinstance(err, DomainError) and err.not_authorized and self.store.state.authorized:
            log(event="session_expired_detected", installId=self.install_id, errorCode=err.code or "", status=err.status)
            self.bus.publish(SESSION_EXPIRED)

    def _on_session_expired(self) -> None:
        task = asyncio.get_running_loop().create_task(self.auth.dispatch(am.SessionExpiredDetected()))
        self._expiry_tasks.add(task)
        task.add_done_callback(self._expiry_tasks.discard)

    # ---- chats ----

    async def list_chats(self, query: str = "", kind: str = "all") -> List[Chat]:
        try:
            chats = await self.remote.get_chats()
        except ChatVibeError as e:
            self.report_remote_error(e)
            raise
        self._chats = {c.id: c for c in chats}
        return filter_chats(chats, query, kind)

    def known_chat(self, chat_id: int) -> Optional[Chat]:
        return self._chats.get(chat_id)

    @property
    def idle(self) -> bool:
        return self.jobs.in_flight == 0 and not self._expiry_tasks

    async def aclose(self) -> None:
        await self.remote.aclose()


# install id -> runtime, least recently used first
_RUNTIMES: "OrderedDict[str, ClientRuntime]" = OrderedDict()
_CLOSING = set()


def get_runtime(install_id: str) -> ClientRuntime:
    rt = _RUNTIMES.get(install_id)
    if rt is not None:
        _RUNTIMES.move_to_end(install_id)
        return rt
    rt = ClientRuntime(install_id)
    _RUNTIMES[install_id] = rt
    log(event="runtime_created", installId=install_id)
    _evict_idle()
    return rt


def _evict_idle() -> None:
    excess = len(_RUNTIMES) - max(settings.MAX_RUNTIMES, 1)
    if excess <= 0:
        return
    # a runtime with an analysis in flight is never dropped
    victims = [k for k, rt in list(_RUNTIMES.items())[:-1] if rt.idle][:excess]
    for install_id in victims:
        rt = _RUNTIMES.pop(install_id)
        log(event="runtime_evicted", installId=install_id, remaining=len(_RUNTIMES))
        _schedule_close(rt)


def _schedule_close(rt: ClientRuntime) -> None:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        log(event="runtime_close_skipped", installId=rt.install_id, reason="no_running_loop")
        return
    task = loop.create_task(rt.aclose())
    _CLOSING.add(task)
    task.add_done_callback(_CLOSING.discard)


async def close_runtimes() -> None:
    """Close every runtime's HTTP client and empty the registry (app shutdown)."""
    runtimes = list(_RUNTIMES.values())
    _RUNTIMES.clear()
    for rt in runtimes:
        try:
            await rt.aclose()
        except Exception as e:
            log(event="runtime_close_failed", installId=rt.install_id, errorType=type(e).__name__, error=str(e)[:200])
    loop = asyncio.get_running_loop()
    pending = [t for t in _CLOSING if t.get_loop() is loop]
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
    log(event="runtimes_closed", count=len(runtimes))


def reset_runtimes() -> None:
    _RUNTIMES.clear()
