"""
Analysis job controller.

A started analysis runs as a detached asyncio task with no cancellation and
no client timeout: closing the drawer or backgrounding the app never aborts
it. The task only publishes ANALYSIS_SETTLED on the bus; the controller owns
what happens next (marker cleanup, visibility check, UI update or
notification).
"""
from __future__ import annotations

import asyncio
from typing import Callable, Dict, Optional, Set

from chatvibe.core.bus import ANALYSIS_SETTLED, EventBus
from chatvibe.core.chats import ANALYSIS_CATEGORIES
from chatvibe.core.drawer import AnalysisJob, Drawer, DrawerStep
from chatvibe.core.errors import ChatVibeError, TransportError, ValidationError
from chatvibe.core.lifecycle import AppVisibility, LifecycleObserver
from chatvibe.core.messages import translate, user_message
from chatvibe.core.ui_feed import UiFeed
from chatvibe.notify.notifier import Notifier
from chatvibe.notify.payloads import build_notification
from chatvibe.observability.logging import log
from chatvibe.remote.client import RemoteClient
from chatvibe.remote.schemas import AnalysisResult, Chat
from chatvibe.store.marker_store import MarkerStore
from chatvibe.utils.time import now_ms


class AnalysisJobController:
    def __init__(
        self,
        remote: RemoteClient,
        markers: MarkerStore,
        lifecycle: LifecycleObserver,
        bus: EventBus,
        feed: UiFeed,
        notifier: Notifier,
        *,
        install_id: str = "",
        on_remote_error: Optional[Callable[[ChatVibeError], None]] = None,
        t: Callable[[str], str] = translate,
    ):
        self.remote = remote
        self.markers = markers
        self.lifecycle = lifecycle
        self.bus = bus
        self.feed = feed
        self.notifier = notifier
        self.install_id = install_id
        self.on_remote_error = on_remote_error
        self.t = t
        self._drawers: Dict[int, Drawer] = {}
        # strong refs so detached tasks are not garbage-collected mid-flight
        self._tasks: Set[asyncio.Task] = set()
        # at most one unfinished analysis per chat, independent of drawer UI state
        self._running: Dict[int, AnalysisJob] = {}
        bus.subscribe(ANALYSIS_SETTLED, self._on_settled)

    # ---- drawer navigation ----

    def drawer(self, chat_id: int) -> Optional[Drawer]:
        return self._drawers.get(chat_id)

    def _require(self, chat_id: int) -> Drawer:
        d = self._drawers.get(chat_id)
        if d is None:
            raise ValidationError("analysis.drawerNotOpen")
        return d

    def open(self, chat: Chat) -> Drawer:
        d = self._drawers.get(chat.id)
        if d is not None and d.step in (DrawerStep.RUNNING, DrawerStep.SETTLED):
            return d
        job = self._running.get(chat.id)
        if job is not None:
            d = Drawer(chat=chat, step=DrawerStep.RUNNING, job=job)
            self._drawers[chat.id] = d
            return d
        d = Drawer(chat=chat)
        self._drawers[chat.id] = d
        return d

    def select_type(self, chat_id: int, category: str) -> Drawer:
        d = self._require(chat_id)
        if category not in ANALYSIS_CATEGORIES:
            raise ValidationError("analysis.unknownCategory")
        if d.step == DrawerStep.RUNNING:
            return d
        d.category = category
        d.step = DrawerStep.OPTION_SELECTION
        return d

    def back_to_type(self, chat_id: int) -> Drawer:
        d = self._require(chat_id)
        if d.step == DrawerStep.RUNNING:
            return d
        d.category = None
        d.step = DrawerStep.TYPE_SELECTION
        return d

    def close(self, chat_id: int) -> None:
        d = self._drawers.pop(chat_id, None)
        if d is not None and d.step == DrawerStep.RUNNING:
            # the request keeps running; its result is re-attached on settle
            log(event="analysis_drawer_closed_while_running", installId=self.install_id, chatId=chat_id)

    async def check_possible(self, chat_id: int) -> Drawer:
        d = self._require(chat_id)
        try:
            d.possible = await self.remote.analyze_possible(chat_id)
        except ChatVibeError as e:
            self._remote_failed(e)
            self.feed.toast("error", user_message(e, self.t))
        return d

    # ---- job lifecycle ----

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def start(self, chat: Chat, kind: str, tone: Optional[str] = None, language: Optional[str] = None) -> Optional[AnalysisJob]:
        if chat.id in self._running:
            log(event="analysis_start_refused", installId=self.install_id, chatId=chat.id, reason="already_running")
            return None

        job = AnalysisJob(
            chat_id=chat.id,
            chat_title=chat.title,
            analysis_kind=kind,
            started_at=now_ms(),
            tone=tone,
            language=language,
        )

        # marker goes down before the request is issued; no marker, no request
        try:
            self.markers.write(job.marker())
        except Exception as e:
            log(event="pending_marker_write_failed", installId=self.install_id, chatId=chat.id,
                errorType=type(e).__name__, error=str(e)[:200])
            raise TransportError("pending marker write failed") from e

        d = self._drawers.get(chat.id)
        if d is None:
            d = Drawer(chat=chat)
            self._drawers[chat.id] = d

        d.step = DrawerStep.RUNNING
        d.job = job
        d.result = None
        d.error = None

        task = asyncio.get_running_loop().create_task(self._run(job), name=f"analysis:{self.install_id}:{chat.id}")
        self._running[chat.id] = job
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        log(event="analysis_started", installId=self.install_id, chatId=chat.id, type=kind, tone=tone or "")
        return job

    async def _run(self, job: AnalysisJob) -> None:
        try:
            try:
                result = await self.remote.analyze(job.chat_id, job.analysis_kind, tone=job.tone, language=job.language)
            except ChatVibeError as e:
                log(event="analysis_failed", installId=self.install_id, chatId=job.chat_id, errorType=type(e).__name__)
                self.bus.publish(ANALYSIS_SETTLED, job=job, result=None, error=e)
                self._remote_failed(e)
                return
            self.bus.publish(ANALYSIS_SETTLED, job=job, result=result, error=None)
        finally:
            if self._running.get(job.chat_id) == job:
                del self._running[job.chat_id]

    def _on_settled(self, job: AnalysisJob, result: Optional[AnalysisResult], error: Optional[ChatVibeError]) -> None:
        # 1) marker is cleared on every outcome
        try:
            self.markers.delete()
        except Exception as e:
            log(event="pending_marker_delete_failed", installId=self.install_id, chatId=job.chat_id,
                errorType=type(e).__name__, error=str(e)[:200])

        # 2) visibility is sampled once, now
        visibility = self.lifecycle.visibility
        ok = error is None
        log(event="analysis_settled", installId=self.install_id, chatId=job.chat_id, ok=ok,
            visibility=visibility.value, elapsedMs=now_ms() - job.started_at)

        if visibility == AppVisibility.ACTIVE:
            self._apply(job, result, error, toast=True)
            return

        # 3) not visible: notify out-of-band; the drawer stays RUNNING
        notification = build_notification(job.chat_id, job.chat_title, ok=ok)
        try:
            self.notifier.schedule(self.install_id, notification)
        except Exception as e:
            log(event="analysis_notify_fallback", installId=self.install_id, chatId=job.chat_id,
                errorType=type(e).__name__, error=str(e)[:200])
            self._apply(job, result, error, toast=False)

    def _apply(self, job: AnalysisJob, result: Optional[AnalysisResult], error: Optional[ChatVibeError], *, toast: bool) -> None:
        d = self._drawers.get(job.chat_id)
        if d is None:
            # drawer was closed while running; keep the result for the next open
            d = Drawer(chat=Chat(id=job.chat_id, title=job.chat_title), job=job)
            self._drawers[job.chat_id] = d
        elif d.job is not None and d.job != job:
            log(event="analysis_stale_result", installId=self.install_id, chatId=job.chat_id)
            return

        d.step = DrawerStep.SETTLED
        d.result = result
        d.error = user_message(error, self.t, fallback_key="analysis.failed") if error else None

        if toast:
            if error is None:
                self.feed.toast("success", self.t("analysis.success"))
            else:
                self.feed.toast("error", d.error)

    def _remote_failed(self, err: ChatVibeError) -> None:
        if self.on_remote_error is not None:
            self.on_remote_error(err)
