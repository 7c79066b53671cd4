from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Step(str, Enum):
    PHONE = "phone"
    CODE = "code"
    PASSWORD = "password"


@dataclass(frozen=True)
class AuthState:
    authorized: bool = False
    # Flips to True once, after the first /auth/status check settles
    checked: bool = False
    phone: str = ""
    step: Step = Step.PHONE

    def to_dict(self) -> dict:
        return {
            "authorized": self.authorized,
            "checked": self.checked,
            "phone": self.phone,
            "step": self.step.value,
        }


@dataclass
class PendingMarker:
    """
    Advisory "analysis in flight" record. Wire names match what the device
    persisted historically: {chatId, chatTitle, type, timestamp}.
    """
    chatId: int = 0
    chatTitle: str = ""
    type: str = ""
    # epoch milliseconds
    timestamp: int = 0
    tone: Optional[str] = None
    language: Optional[str] = None
