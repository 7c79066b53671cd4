from collections import defaultdict
from typing import Callable, Dict, List

from chatvibe.observability.logging import log

Handler = Callable[..., None]

# Topics
ANALYSIS_SETTLED = "analysis_settled"
PENDING_ON_RESUME = "pending_on_resume"
SESSION_EXPIRED = "session_expired"


class EventBus:
    """
    In-process pub/sub. Handlers run synchronously in subscription order; a
    failing handler is logged and does not stop the others.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        self._handlers[topic].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[topic]:
                self._handlers[topic].remove(handler)

        return unsubscribe

    def publish(self, topic: str, **payload) -> int:
        delivered = 0
        for handler in list(self._handlers.get(topic, [])):
            try:
                handler(**payload)
                delivered += 1
            except Exception as e:
                log(
                    event="bus_handler_failed",
                    topic=topic,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    errorType=type(e).__name__,
                    error=str(e)[:300],
                )
        return delivered
