from dataclasses import replace
from typing import Any, Callable, List

from chatvibe.store.models import AuthState
from chatvibe.observability.logging import log

Listener = Callable[[AuthState, AuthState], None]


class SessionStore:
    """
    Holds the current AuthState for one device. Written only by the auth flow;
    everything else reads through `state`, `select` or `subscribe`.
    """

    def __init__(self, initial: AuthState = None):
        self._state = initial or AuthState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> AuthState:
        return self._state

    def select(self, selector: Callable[[AuthState], Any]) -> Any:
        return selector(self._state)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def replace(self, new_state: AuthState) -> None:
        old = self._state
        # checked never goes back to False once set
        if old.checked and not new_state.checked:
            new_state = replace(new_state, checked=True)
        if new_state == old:
            return
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(old, new_state)
            except Exception as e:
                log(event="session_listener_failed", errorType=type(e).__name__, error=str(e)[:200])
