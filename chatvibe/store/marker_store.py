import json
import inspect
from typing import Optional

from chatvibe.settings import settings
from chatvibe.store.redis_conn import get_redis
from chatvibe.store.models import PendingMarker
from chatvibe.observability.logging import log


def _filter_marker_kwargs(data: dict) -> dict:
    """
    Drop unknown fields so PendingMarker(**kwargs) never explodes
    """
    sig = inspect.signature(PendingMarker)
    allowed = set(sig.parameters.keys())
    return {k: v for k, v in data.items() if k in allowed}


class MarkerStore:
    """
    Durable per-device local state: the single-slot pending-analysis marker
    (last write wins) and the first-run intro flag.
    """

    def __init__(self, install_id: str, redis=None):
        self.install_id = install_id
        self._redis = redis

    @property
    def redis(self):
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    def _marker_key(self) -> str:
        return f"{settings.PENDING_ANALYSIS_KEY}:{self.install_id}"

    def _intro_key(self) -> str:
        return f"{settings.INTRO_SHOWN_KEY}:{self.install_id}"

    def write(self, marker: PendingMarker) -> None:
        data = {k: v for k, v in marker.__dict__.items() if v is not None}
        self.redis.set(self._marker_key(), json.dumps(data))
        log(event="pending_marker_written", installId=self.install_id, chatId=marker.chatId, type=marker.type)

    def read(self) -> Optional[PendingMarker]:
        raw = self.redis.get(self._marker_key())
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            log(event="pending_marker_corrupt", installId=self.install_id)
            return None
        if not isinstance(data, dict):
            log(event="pending_marker_corrupt", installId=self.install_id)
            return None
        return PendingMarker(**_filter_marker_kwargs(data))

    def delete(self) -> None:
        self.redis.delete(self._marker_key())
        log(event="pending_marker_cleared", installId=self.install_id)

    def intro_shown(self) -> bool:
        return self.redis.get(self._intro_key()) == "1"

    def mark_intro_shown(self) -> None:
        self.redis.set(self._intro_key(), "1")
