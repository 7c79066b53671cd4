from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from chatvibe.api.auth import client_runtime, require_api_key
from chatvibe.api.schemas import AnalyzeStartRequest, ChatView, DrawerTypeRequest
from chatvibe.core.chats import CHAT_FILTERS, chat_view
from chatvibe.core.errors import ChatVibeError, DomainError, ValidationError
from chatvibe.core.messages import user_message
from chatvibe.core.runtime import ClientRuntime
from chatvibe.remote.schemas import Chat

router = APIRouter(prefix="/chats", tags=["chats"], dependencies=[Depends(require_api_key)])


def _http_error(err: ChatVibeError) -> HTTPException:
    if isinstance(err, ValidationError):
        return HTTPException(status_code=422, detail=user_message(err))
    if isinstance(err, DomainError) and err.not_authorized:
        return HTTPException(status_code=401, detail=user_message(err))
    if isinstance(err, DomainError) and err.code == "CHAT_NOT_FOUND":
        return HTTPException(status_code=404, detail=user_message(err))
    return HTTPException(status_code=502, detail=user_message(err))


def _known_chat(rt: ClientRuntime, chat_id: int) -> Chat:
    chat = rt.known_chat(chat_id)
    if chat is None:
        raise _http_error(DomainError("CHAT_NOT_FOUND", status=404))
    return chat


@router.get("", response_model=List[ChatView])
async def list_chats(
    q: str = "",
    kind: str = Query("all"),
    rt: ClientRuntime = Depends(client_runtime),
):
    if kind not in CHAT_FILTERS:
        raise HTTPException(status_code=422, detail=f"kind must be one of {', '.join(CHAT_FILTERS)}")
    try:
        chats = await rt.list_chats(q, kind)
    except ChatVibeError as e:
        raise _http_error(e)
    return [chat_view(c) for c in chats]


@router.post("/{chat_id}/drawer")
def open_drawer(chat_id: int, rt: ClientRuntime = Depends(client_runtime)):
    return rt.jobs.open(_known_chat(rt, chat_id)).to_dict()


@router.get("/{chat_id}/drawer")
def get_drawer(chat_id: int, rt: ClientRuntime = Depends(client_runtime)):
    d = rt.jobs.drawer(chat_id)
    if d is None:
        raise HTTPException(status_code=404, detail="drawer not open")
    return d.to_dict()


@router.delete("/{chat_id}/drawer")
def close_drawer(chat_id: int, rt: ClientRuntime = Depends(client_runtime)):
    rt.jobs.close(chat_id)
    return {"closed": True}


@router.post("/{chat_id}/drawer/type")
def select_type(chat_id: int, body: DrawerTypeRequest, rt: ClientRuntime = Depends(client_runtime)):
    try:
        return rt.jobs.select_type(chat_id, body.category).to_dict()
    except ChatVibeError as e:
        raise _http_error(e)


@router.post("/{chat_id}/drawer/back")
def back_to_type(chat_id: int, rt: ClientRuntime = Depends(client_runtime)):
    try:
        return rt.jobs.back_to_type(chat_id).to_dict()
    except ChatVibeError as e:
        raise _http_error(e)


@router.get("/{chat_id}/possible")
async def analyze_possible(chat_id: int, rt: ClientRuntime = Depends(client_runtime)):
    try:
        d = await rt.jobs.check_possible(chat_id)
    except ChatVibeError as e:
        raise _http_error(e)
    return {"chatId": chat_id, "possible": d.possible}


@router.post("/{chat_id}/analyze")
async def start_analysis(chat_id: int, body: AnalyzeStartRequest, rt: ClientRuntime = Depends(client_runtime)):
    chat = _known_chat(rt, chat_id)
    try:
        job = rt.jobs.start(chat, body.kind, tone=body.tone, language=body.language)
    except ChatVibeError as e:
        raise _http_error(e)
    if job is None:
        raise HTTPException(status_code=409, detail="analysis already running for this chat")
    return {"started": True, "drawer": rt.jobs.drawer(chat_id).to_dict()}
