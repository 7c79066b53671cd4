from fastapi import APIRouter, Depends

from chatvibe.api.auth import client_runtime, require_api_key
from chatvibe.api.schemas import (
    AuthSnapshot,
    CodeIndexRequest,
    CodeInputRequest,
    CountryRequest,
    LifecycleRequest,
    PasswordRequest,
    PhoneRequest,
    UiEvents,
)
from chatvibe.core import auth_machine as am
from chatvibe.core.runtime import ClientRuntime

router = APIRouter(dependencies=[Depends(require_api_key)])


def _snapshot(state: am.AuthFlowState) -> AuthSnapshot:
    return AuthSnapshot(session=state.session.to_dict(), form=state.form.to_dict())


# ---------------------------------------------------------------------------
# Auth flow: the UI posts events, gets the new snapshot back
# ---------------------------------------------------------------------------
@router.get("/auth/state", response_model=AuthSnapshot)
async def auth_state(rt: ClientRuntime = Depends(client_runtime)):
    await rt.ensure_checked()
    return _snapshot(rt.auth.state)


@router.post("/auth/check", response_model=AuthSnapshot)
async def auth_check(rt: ClientRuntime = Depends(client_runtime)):
    return _snapshot(await rt.auth.check_status())


@router.post("/auth/country", response_model=AuthSnapshot)
async def auth_country(body: CountryRequest, rt: ClientRuntime = Depends(client_runtime)):
    return _snapshot(await rt.auth.dispatch(am.CountrySelected(code=body.code)))


@router.post("/auth/phone", response_model=AuthSnapshot)
async def auth_phone(body: PhoneRequest, rt: ClientRuntime = Depends(client_runtime)):
    if body.countryCode:
        await rt.auth.dispatch(am.CountrySelected(code=body.countryCode))
    if body.phone is not None:
        await rt.auth.dispatch(am.PhoneChanged(raw=body.phone))
    return _snapshot(await rt.auth.dispatch(am.SubmitPhone()))


@router.post("/auth/code/input", response_model=AuthSnapshot)
async def auth_code_input(body: CodeInputRequest, rt: ClientRuntime = Depends(client_runtime)):
    return _snapshot(await rt.auth.dispatch(am.CodeInput(index=body.index, text=body.text)))


@router.post("/auth/code/backspace", response_model=AuthSnapshot)
async def auth_code_backspace(body: CodeIndexRequest, rt: ClientRuntime = Depends(client_runtime)):
    return _snapshot(await rt.auth.dispatch(am.CodeBackspace(index=body.index)))


@router.post("/auth/code/focus", response_model=AuthSnapshot)
async def auth_code_focus(body: CodeIndexRequest, rt: ClientRuntime = Depends(client_runtime)):
    return _snapshot(await rt.auth.dispatch(am.CodeFocus(index=body.index)))


@router.post("/auth/code/resend", response_model=AuthSnapshot)
async def auth_code_resend(rt: ClientRuntime = Depends(client_runtime)):
    return _snapshot(await rt.auth.dispatch(am.ResendCode()))


@router.post("/auth/password", response_model=AuthSnapshot)
async def auth_password(body: PasswordRequest, rt: ClientRuntime = Depends(client_runtime)):
    await rt.auth.dispatch(am.PasswordChanged(value=body.password))
    return _snapshot(await rt.auth.dispatch(am.SubmitPassword()))


@router.post("/auth/back", response_model=AuthSnapshot)
async def auth_back(rt: ClientRuntime = Depends(client_runtime)):
    return _snapshot(await rt.auth.dispatch(am.Back()))


@router.post("/auth/logout", response_model=AuthSnapshot)
async def auth_logout(rt: ClientRuntime = Depends(client_runtime)):
    return _snapshot(await rt.auth.dispatch(am.Logout()))


# ---------------------------------------------------------------------------
# OS lifecycle, local state, UI notices
# ---------------------------------------------------------------------------
@router.post("/lifecycle")
def lifecycle_change(body: LifecycleRequest, rt: ClientRuntime = Depends(client_runtime)):
    state = rt.lifecycle.on_change(body.state)
    return {"state": state.value, "resumedFromBackground": rt.lifecycle.resumed_from_background}


@router.get("/lifecycle")
def lifecycle_state(rt: ClientRuntime = Depends(client_runtime)):
    return {"state": rt.lifecycle.visibility.value, "resumedFromBackground": rt.lifecycle.resumed_from_background}


@router.get("/pending")
def pending_analysis(rt: ClientRuntime = Depends(client_runtime)):
    marker = rt.markers.read()
    return {"pending": marker.__dict__ if marker else None}


@router.get("/intro")
def intro_state(rt: ClientRuntime = Depends(client_runtime)):
    return {"shown": rt.markers.intro_shown()}


@router.post("/intro")
def intro_done(rt: ClientRuntime = Depends(client_runtime)):
    rt.markers.mark_intro_shown()
    return {"shown": True}


@router.get("/ui/events", response_model=UiEvents)
def ui_events(rt: ClientRuntime = Depends(client_runtime)):
    return UiEvents(events=rt.feed.drain())
