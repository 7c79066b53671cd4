from enum import Enum

from chatvibe.core.bus import EventBus, PENDING_ON_RESUME
from chatvibe.observability.logging import log
from chatvibe.store.marker_store import MarkerStore


class AppVisibility(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BACKGROUND = "background"


class LifecycleObserver:
    """
    Tracks the OS app state reported by the UI. The job controller reads
    `visibility`; only `on_change` writes it.
    """

    def __init__(self, markers: MarkerStore, bus: EventBus, *, install_id: str = ""):
        self.markers = markers
        self.bus = bus
        self.install_id = install_id
        self._visibility = AppVisibility.ACTIVE
        self.resumed_from_background = False

    @property
    def visibility(self) -> AppVisibility:
        return self._visibility

    @property
    def is_active(self) -> bool:
        return self._visibility == AppVisibility.ACTIVE

    def on_change(self, next_state) -> AppVisibility:
        nxt = AppVisibility(next_state)
        prev = self._visibility
        self._visibility = nxt

        if prev != AppVisibility.ACTIVE and nxt == AppVisibility.ACTIVE:
            self.resumed_from_background = True
            self._check_pending_on_resume()
        elif nxt != AppVisibility.ACTIVE:
            self.resumed_from_background = False

        if prev != nxt:
            log(event="app_visibility_changed", installId=self.install_id, fromState=prev.value, toState=nxt.value)
        return nxt

    def _check_pending_on_resume(self) -> None:
        # No polling endpoint exists: the marker is only surfaced, never resumed.
        try:
            marker = self.markers.read()
        except Exception as e:
            log(event="pending_marker_read_failed", installId=self.install_id, errorType=type(e).__name__, error=str(e)[:200])
            return
        if marker is None:
            return
        log(event="analysis_pending_on_resume", installId=self.install_id, chatId=marker.chatId, type=marker.type)
        self.bus.publish(PENDING_ON_RESUME, marker=marker)

