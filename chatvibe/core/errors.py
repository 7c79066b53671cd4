from typing import Optional


class ChatVibeError(Exception):
    """Base for every failure recovered at the state-machine boundary."""


class ValidationError(ChatVibeError):
    """Local input rejected before any network call (e.g. phone length, empty password)."""

    def __init__(self, message_key: str):
        super().__init__(message_key)
        self.message_key = message_key


class TransportError(ChatVibeError):
    """Network unreachable, or a response whose body could not be understood."""

    def __init__(self, detail: str = "", status: Optional[int] = None):
        super().__init__(detail or "transport error")
        self.status = status


class DomainError(ChatVibeError):
    """The backend answered with an error payload (data.code / data.error / data.message)."""

    def __init__(self, code: Optional[str], status: Optional[int] = None, detail: str = ""):
        super().__init__(detail or code or "domain error")
        self.code = code
        self.status = status

    @property
    def not_authorized(self) -> bool:
        return self.code == "NOT_AUTHORIZED" or self.status == 401
