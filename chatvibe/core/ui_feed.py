from collections import deque
from typing import List

from chatvibe.settings import settings
from chatvibe.utils.time import now_ms


class UiFeed:
    """
    Per-device queue of UI notices (toasts, haptic pulses). The UI drains it
    after each interaction; oldest notices fall off when it is full.
    """

    def __init__(self, maxlen: int = None):
        self._items = deque(maxlen=int(maxlen or settings.UI_FEED_MAX))

    def push(self, kind: str, level: str, message: str = "") -> None:
        self._items.append({"kind": kind, "level": level, "message": message, "ts": now_ms()})

    def toast(self, level: str, message: str) -> None:
        self.push("toast", level, message)

    def haptic(self, level: str) -> None:
        self.push("haptic", level)

    def drain(self) -> List[dict]:
        out = list(self._items)
        self._items.clear()
        return out

    def __len__(self) -> int:
        return len(self._items)
