from typing import Iterable, List, Optional

from chatvibe.settings import settings
from chatvibe.remote.schemas import Chat

# Analysis catalog offered by the drawer
ANALYSIS_CATEGORIES = ("personal", "business", "qualities")
ANALYSIS_KINDS = (
    "communication_character",
    "how_to_communicate_better",
    "where_am_i_making_mistakes",
    "understand_the_dynamic",
    "what_to_answer",
)
TONES = ("neutral", "direct", "supportive")
DEFAULT_TONE = "neutral"

CHAT_FILTERS = ("all", "personal", "group")


def process_avatar_url(avatar_url: Optional[str]) -> Optional[str]:
    """
    - absolute http(s) URL: returned as-is
    - relative "/path": prefixed with AVATAR_BASE_URL
    """
    if not avatar_url:
        return None
    if avatar_url.startswith("http://") or avatar_url.startswith("https://"):
        return avatar_url
    if avatar_url.startswith("/"):
        return f"{settings.AVATAR_BASE_URL.rstrip('/')}{avatar_url}"
    return avatar_url


def is_personal(chat: Chat) -> bool:
    t = (chat.type or "").lower()
    return t == "private" or "личн" in t or "personal" in t


def is_group(chat: Chat) -> bool:
    t = (chat.type or "").lower()
    return "групп" in t or "group" in t


def filter_chats(chats: Iterable[Chat], query: str = "", kind: str = "all") -> List[Chat]:
    q = (query or "").strip().lower()
    out = []
    for chat in chats:
        if q and q not in chat.title.lower():
            continue
        if kind == "personal" and not is_personal(chat):
            continue
        if kind == "group" and not is_group(chat):
            continue
        out.append(chat)
    return out


def chat_view(chat: Chat) -> dict:
    return {
        "id": chat.id,
        "title": chat.title,
        "type": chat.type,
        "avatarUrl": process_avatar_url(chat.avatar_url),
        "personal": is_personal(chat),
    }
