from dataclasses import dataclass, replace
from typing import Optional, Tuple

CODE_LENGTH = 5

_EMPTY: Tuple[str, ...] = ("",) * CODE_LENGTH


def _digits(text: str) -> str:
    return "".join(ch for ch in (text or "") if ch.isdigit())


@dataclass(frozen=True)
class CodeEntry:
    """Five single-digit slots with at most one focused slot."""
    slots: Tuple[str, ...] = _EMPTY
    focus: Optional[int] = 0

    @property
    def value(self) -> str:
        return "".join(self.slots)

    @property
    def is_complete(self) -> bool:
        return all(self.slots)

    def _in_range(self, index: int) -> bool:
        return 0 <= index < CODE_LENGTH

    def input(self, index: int, text: str) -> "CodeEntry":
        if not self._in_range(index):
            return self
        slots = list(self.slots)
        if text == "":
            slots[index] = ""
            return replace(self, slots=tuple(slots), focus=index)

        digits = _digits(text)
        if not digits:
            return self

        if len(text) == 1:
            slots[index] = digits
            nxt = index + 1
            return replace(self, slots=tuple(slots), focus=nxt if nxt < CODE_LENGTH else None)

        # paste: fill forward from index, extra digits are ignored
        pos = index
        for d in digits:
            if pos >= CODE_LENGTH:
                break
            slots[pos] = d
            pos += 1
        return replace(self, slots=tuple(slots), focus=pos if pos < CODE_LENGTH else None)

    def backspace(self, index: int) -> "CodeEntry":
        if not self._in_range(index):
            return self
        slots = list(self.slots)
        if slots[index]:
            slots[index] = ""
            return replace(self, slots=tuple(slots), focus=index)
        if index == 0:
            return self
        slots[index - 1] = ""
        return replace(self, slots=tuple(slots), focus=index - 1)

    def focus_on(self, index: int) -> "CodeEntry":
        if not self._in_range(index):
            return self
        return replace(self, focus=index)

    def blur(self) -> "CodeEntry":
        return replace(self, focus=None)

    @classmethod
    def cleared(cls) -> "CodeEntry":
        return cls()

    def to_dict(self) -> dict:
        return {"slots": list(self.slots), "focus": self.focus, "complete": self.is_complete}
