"""
Auth state machine: phone -> code -> password -> authorized.

`reduce(state, event)` is pure. It returns the next state plus the effects
the adapter (`chatvibe.core.auth_flow.AuthFlow`) must run: remote calls,
haptic pulses and toasts. Remote outcomes come back in as events.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from chatvibe.settings import settings
from chatvibe.core.code_entry import CodeEntry
from chatvibe.core.messages import translate
from chatvibe.store.models import AuthState, Step


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AuthForm:
    """Transient screen fields. Never persisted."""
    country_code: str = field(default_factory=lambda: settings.DEFAULT_COUNTRY_CODE)
    phone_input: str = ""
    code: CodeEntry = field(default_factory=CodeEntry)
    password: str = ""
    status: Optional[str] = None
    code_error: bool = False
    password_error: bool = False
    # a send-code or password request is outstanding
    busy: bool = False
    # re-entrancy guard for code auto-submit
    submitting_code: bool = False
    submitted_code: Optional[str] = None
    resending: bool = False

    def to_dict(self) -> dict:
        return {
            "countryCode": self.country_code,
            "phoneInput": self.phone_input,
            "code": self.code.to_dict(),
            "status": self.status,
            "codeError": self.code_error,
            "passwordError": self.password_error,
            "busy": self.busy,
            "submittingCode": self.submitting_code,
            "resending": self.resending,
        }


@dataclass(frozen=True)
class AuthFlowState:
    session: AuthState = field(default_factory=AuthState)
    form: AuthForm = field(default_factory=AuthForm)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StatusChecked:
    authorized: bool

@dataclass(frozen=True)
class StatusCheckFailed:
    pass

@dataclass(frozen=True)
class CountrySelected:
    code: str

@dataclass(frozen=True)
class PhoneChanged:
    raw: str

@dataclass(frozen=True)
class SubmitPhone:
    raw: Optional[str] = None

@dataclass(frozen=True)
class CodeSent:
    message: Optional[str] = None
    resend: bool = False

@dataclass(frozen=True)
class SendCodeFailed:
    message: str
    resend: bool = False

@dataclass(frozen=True)
class CodeInput:
    index: int
    text: str

@dataclass(frozen=True)
class CodeBackspace:
    index: int

@dataclass(frozen=True)
class CodeFocus:
    index: int

@dataclass(frozen=True)
class SignInResolved:
    need_password: bool = False
    success: bool = False
    error: Optional[str] = None

@dataclass(frozen=True)
class SignInFailed:
    message: str

@dataclass(frozen=True)
class ResendCode:
    pass

@dataclass(frozen=True)
class PasswordChanged:
    value: str

@dataclass(frozen=True)
class SubmitPassword:
    password: Optional[str] = None

@dataclass(frozen=True)
class PasswordResolved:
    success: bool = False
    error: Optional[str] = None

@dataclass(frozen=True)
class PasswordFailed:
    message: str

@dataclass(frozen=True)
class Back:
    pass

@dataclass(frozen=True)
class Logout:
    pass

@dataclass(frozen=True)
class SessionExpiredDetected:
    pass


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CallSendCode:
    phone: str
    resend: bool = False

@dataclass(frozen=True)
class CallSignIn:
    phone: str
    code: str

@dataclass(frozen=True)
class CallSubmitPassword:
    password: str

@dataclass(frozen=True)
class CallLogout:
    pass

@dataclass(frozen=True)
class Haptic:
    kind: str  # success / error

@dataclass(frozen=True)
class Toast:
    level: str  # success / error / info
    message: str


@dataclass(frozen=True)
class Transition:
    state: AuthFlowState
    effects: Tuple[object, ...] = ()
    # set when the event was dropped, for the adapter to log
    ignored: Optional[str] = None


# Events that belong to the sign-in steps; dropped once authorized.
STEP_EVENTS = (
    CountrySelected, PhoneChanged, SubmitPhone, CodeSent, SendCodeFailed,
    CodeInput, CodeBackspace, CodeFocus, SignInResolved, SignInFailed,
    ResendCode, PasswordChanged, SubmitPassword, PasswordResolved,
    PasswordFailed, Back,
)


def digits_only(raw: Optional[str]) -> str:
    return "".join(ch for ch in (raw or "") if ch.isdigit())


def phone_is_valid(digits: str) -> bool:
    return settings.PHONE_MIN_DIGITS <= len(digits) <= settings.PHONE_MAX_DIGITS


def _with(state: AuthFlowState, session: AuthState = None, form: AuthForm = None) -> AuthFlowState:
    return AuthFlowState(session=session or state.session, form=form or state.form)


def _ignore(state: AuthFlowState, reason: str) -> Transition:
    return Transition(state=state, ignored=reason)


def _reset_form(form: AuthForm) -> AuthForm:
    return AuthForm(country_code=form.country_code)


def _authorized(state: AuthFlowState) -> Transition:
    session = replace(state.session, authorized=True)
    form = replace(_reset_form(state.form), status=translate("auth.success"))
    return Transition(_with(state, session, form), (Haptic("success"),))


def _maybe_autosubmit(session: AuthState, form: AuthForm) -> Tuple[AuthForm, Tuple[object, ...]]:
    if not form.code.is_complete:
        # an incomplete entry re-arms auto-submit for the next completion
        return replace(form, submitted_code=None), ()
    value = form.code.value
    if form.submitting_code or value == form.submitted_code:
        return form, ()
    form = replace(form, submitting_code=True, submitted_code=value, status=translate("auth.verifyingCode"))
    return form, (CallSignIn(phone=session.phone, code=value),)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _on_status_checked(state: AuthFlowState, e: StatusChecked) -> Transition:
    if state.session.authorized and not e.authorized:
        # the backend dropped the session: sign out the same way Logout does
        out = _signed_out(state)
        return Transition(AuthFlowState(session=replace(out.session, checked=True), form=out.form))
    session = replace(state.session, authorized=bool(e.authorized), checked=True)
    form = _reset_form(state.form) if e.authorized else state.form
    return Transition(_with(state, session, form))


def _on_status_check_failed(state: AuthFlowState, e: StatusCheckFailed) -> Transition:
    if state.session.authorized:
        # a failed re-check is not evidence of a lost session
        return _ignore(state, "already_authorized")
    session = replace(state.session, authorized=False, checked=True)
    return Transition(_with(state, session))


def _on_country_selected(state: AuthFlowState, e: CountrySelected) -> Transition:
    code = (e.code or "").strip()
    if not code:
        return _ignore(state, "empty_country_code")
    if not code.startswith("+"):
        code = "+" + code
    return Transition(_with(state, form=replace(state.form, country_code=code)))


def _on_phone_changed(state: AuthFlowState, e: PhoneChanged) -> Transition:
    cleaned = (e.raw or "").replace(" ", "").replace("+", "")
    return Transition(_with(state, form=replace(state.form, phone_input=cleaned)))


def _on_submit_phone(state: AuthFlowState, e: SubmitPhone) -> Transition:
    if state.session.step != Step.PHONE:
        return _ignore(state, "wrong_step")
    if state.form.busy:
        return _ignore(state, "request_outstanding")
    raw = e.raw if e.raw is not None else state.form.phone_input
    digits = digits_only(raw)
    if not digits:
        return Transition(_with(state, form=replace(state.form, status=translate("auth.enterPhone"))))
    if not phone_is_valid(digits):
        return Transition(_with(state, form=replace(state.form, status=translate("auth.phoneLength"))))
    phone = f"{state.form.country_code}{digits}"
    session = replace(state.session, phone=phone)
    form = replace(state.form, phone_input=digits, busy=True, status=translate("auth.sendingCode"))
    return Transition(_with(state, session, form), (CallSendCode(phone=phone),))


def _on_code_sent(state: AuthFlowState, e: CodeSent) -> Transition:
    status = e.message or translate("auth.codeSent")
    if e.resend:
        if state.session.step != Step.CODE or not state.form.resending:
            return _ignore(state, "stale_result")
        return Transition(_with(state, form=replace(state.form, resending=False, status=status)))

    if state.session.step != Step.PHONE or not state.form.busy:
        return _ignore(state, "stale_result")
    session = replace(state.session, step=Step.CODE)
    form = replace(
        state.form,
        busy=False,
        status=status,
        code=CodeEntry.cleared(),
        code_error=False,
        submitting_code=False,
        submitted_code=None,
    )
    return Transition(_with(state, session, form))


def _on_send_code_failed(state: AuthFlowState, e: SendCodeFailed) -> Transition:
    if e.resend:
        if state.session.step != Step.CODE or not state.form.resending:
            return _ignore(state, "stale_result")
        return Transition(_with(state, form=replace(state.form, resending=False, status=e.message)))

    if state.session.step != Step.PHONE or not state.form.busy:
        return _ignore(state, "stale_result")
    return Transition(_with(state, form=replace(state.form, busy=False, status=e.message)))


def _edit_code(state: AuthFlowState, entry: CodeEntry) -> Transition:
    form = replace(state.form, code=entry, code_error=False)
    form, effects = _maybe_autosubmit(state.session, form)
    return Transition(_with(state, form=form), effects)


def _on_code_input(state: AuthFlowState, e: CodeInput) -> Transition:
    if state.session.step != Step.CODE:
        return _ignore(state, "wrong_step")
    return _edit_code(state, state.form.code.input(e.index, e.text))


def _on_code_backspace(state: AuthFlowState, e: CodeBackspace) -> Transition:
    if state.session.step != Step.CODE:
        return _ignore(state, "wrong_step")
    return _edit_code(state, state.form.code.backspace(e.index))


def _on_code_focus(state: AuthFlowState, e: CodeFocus) -> Transition:
    if state.session.step != Step.CODE:
        return _ignore(state, "wrong_step")
    return Transition(_with(state, form=replace(state.form, code=state.form.code.focus_on(e.index))))


def _code_rejected(state: AuthFlowState, message: str) -> Transition:
    form = replace(state.form, submitting_code=False, code_error=True, status=message)
    form, effects = _maybe_autosubmit(state.session, form)
    return Transition(_with(state, form=form), (Haptic("error"),) + effects)


def _on_sign_in_resolved(state: AuthFlowState, e: SignInResolved) -> Transition:
    if state.session.step != Step.CODE or not state.form.submitting_code:
        return _ignore(state, "stale_result")
    if e.need_password:
        session = replace(state.session, step=Step.PASSWORD)
        form = replace(
            state.form,
            submitting_code=False,
            code_error=False,
            password="",
            password_error=False,
            status=translate("auth.needPassword"),
        )
        return Transition(_with(state, session, form))
    if e.success:
        return _authorized(state)
    return _code_rejected(state, e.error or translate("auth.invalidCode"))


def _on_sign_in_failed(state: AuthFlowState, e: SignInFailed) -> Transition:
    if state.session.step != Step.CODE or not state.form.submitting_code:
        return _ignore(state, "stale_result")
    return _code_rejected(state, e.message)


def _on_resend_code(state: AuthFlowState, e: ResendCode) -> Transition:
    if state.session.step != Step.CODE:
        return _ignore(state, "wrong_step")
    if state.form.resending:
        return _ignore(state, "request_outstanding")
    form = replace(state.form, resending=True, status=translate("auth.sendingCode"))
    return Transition(_with(state, form=form), (CallSendCode(phone=state.session.phone, resend=True),))


def _on_password_changed(state: AuthFlowState, e: PasswordChanged) -> Transition:
    if state.session.step != Step.PASSWORD:
        return _ignore(state, "wrong_step")
    return Transition(_with(state, form=replace(state.form, password=e.value or "", password_error=False)))


def _on_submit_password(state: AuthFlowState, e: SubmitPassword) -> Transition:
    if state.session.step != Step.PASSWORD:
        return _ignore(state, "wrong_step")
    if state.form.busy:
        return _ignore(state, "request_outstanding")
    raw = e.password if e.password is not None else state.form.password
    trimmed = (raw or "").strip()
    if not trimmed:
        return Transition(_with(state, form=replace(state.form, status=translate("auth.enterPassword"))))
    form = replace(state.form, password=raw, busy=True, password_error=False, status=translate("auth.verifyingPassword"))
    return Transition(_with(state, form=form), (CallSubmitPassword(password=trimmed),))


def _password_rejected(state: AuthFlowState, message: str) -> Transition:
    form = replace(state.form, busy=False, password_error=True, status=message)
    return Transition(_with(state, form=form), (Haptic("error"),))


def _on_password_resolved(state: AuthFlowState, e: PasswordResolved) -> Transition:
    if state.session.step != Step.PASSWORD or not state.form.busy:
        return _ignore(state, "stale_result")
    if e.success:
        return _authorized(state)
    return _password_rejected(state, e.error or translate("auth.invalidPassword"))


def _on_password_failed(state: AuthFlowState, e: PasswordFailed) -> Transition:
    if state.session.step != Step.PASSWORD or not state.form.busy:
        return _ignore(state, "stale_result")
    return _password_rejected(state, e.message)


def _on_back(state: AuthFlowState, e: Back) -> Transition:
    if state.session.step == Step.PHONE:
        return _ignore(state, "wrong_step")
    session = replace(state.session, step=Step.PHONE)
    form = AuthForm(country_code=state.form.country_code, phone_input=state.form.phone_input)
    return Transition(_with(state, session, form))


def _signed_out(state: AuthFlowState) -> AuthFlowState:
    session = AuthState(authorized=False, checked=state.session.checked, phone="", step=Step.PHONE)
    return AuthFlowState(session=session, form=_reset_form(state.form))


def _on_logout(state: AuthFlowState, e: Logout) -> Transition:
    return Transition(_signed_out(state), (CallLogout(),))


def _on_session_expired(state: AuthFlowState, e: SessionExpiredDetected) -> Transition:
    if not state.session.authorized:
        return _ignore(state, "not_authorized")
    return Transition(
        _signed_out(state),
        (CallLogout(), Toast("error", translate("auth.sessionExpired"))),
    )


_HANDLERS = {
    StatusChecked: _on_status_checked,
    StatusCheckFailed: _on_status_check_failed,
    CountrySelected: _on_country_selected,
    PhoneChanged: _on_phone_changed,
    SubmitPhone: _on_submit_phone,
    CodeSent: _on_code_sent,
    SendCodeFailed: _on_send_code_failed,
    CodeInput: _on_code_input,
    CodeBackspace: _on_code_backspace,
    CodeFocus: _on_code_focus,
    SignInResolved: _on_sign_in_resolved,
    SignInFailed: _on_sign_in_failed,
    ResendCode: _on_resend_code,
    PasswordChanged: _on_password_changed,
    SubmitPassword: _on_submit_password,
    PasswordResolved: _on_password_resolved,
    PasswordFailed: _on_password_failed,
    Back: _on_back,
    Logout: _on_logout,
    SessionExpiredDetected: _on_session_expired,
}


def reduce(state: AuthFlowState, event) -> Transition:
    if state.session.authorized and isinstance(event, STEP_EVENTS):
        return _ignore(state, "already_authorized")
    handler = _HANDLERS.get(type(event))
    if handler is None:
        return _ignore(state, "unknown_event")
    return handler(state, event)
