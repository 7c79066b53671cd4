from dataclasses import dataclass
from enum import Enum
from typing import Optional

from chatvibe.remote.schemas import AnalysisResult, Chat
from chatvibe.store.models import PendingMarker


class DrawerStep(str, Enum):
    TYPE_SELECTION = "type_selection"
    OPTION_SELECTION = "option_selection"
    RUNNING = "running"
    SETTLED = "settled"


@dataclass(frozen=True)
class AnalysisJob:
    chat_id: int
    chat_title: str
    analysis_kind: str
    # epoch milliseconds
    started_at: int
    tone: Optional[str] = None
    language: Optional[str] = None

    def marker(self) -> PendingMarker:
        return PendingMarker(
            chatId=self.chat_id,
            chatTitle=self.chat_title,
            type=self.analysis_kind,
            timestamp=self.started_at,
            tone=self.tone,
            language=self.language,
        )


@dataclass
class Drawer:
    chat: Chat
    step: DrawerStep = DrawerStep.TYPE_SELECTION
    category: Optional[str] = None
    job: Optional[AnalysisJob] = None
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    # None until /analyze/possible has answered
    possible: Optional[bool] = None

    def to_dict(self) -> dict:
        return {
            "chatId": self.chat.id,
            "chatTitle": self.chat.title,
            "step": self.step.value,
            "category": self.category,
            "kind": self.job.analysis_kind if self.job else None,
            "tone": self.job.tone if self.job else None,
            "language": self.job.language if self.job else None,
            "startedAt": self.job.started_at if self.job else None,
            "result": self.result.model_dump(exclude_none=True) if self.result else None,
            "error": self.error,
            "possible": self.possible,
        }
