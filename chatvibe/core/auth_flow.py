from __future__ import annotations

from typing import Callable

from chatvibe.core import auth_machine as am
from chatvibe.core.errors import ChatVibeError
from chatvibe.core.messages import translate, user_message
from chatvibe.core.ui_feed import UiFeed
from chatvibe.observability.logging import log
from chatvibe.remote.client import RemoteClient
from chatvibe.store.session_store import SessionStore


class AuthFlow:
    """
    Adapter around the pure auth reducer: applies transitions to the session
    store, forwards haptics/toasts to the UI feed and turns remote-call
    outcomes back into events. No retries; the user re-submits.
    """

    def __init__(
        self,
        store: SessionStore,
        remote: RemoteClient,
        feed: UiFeed,
        *,
        install_id: str = "",
        t: Callable[[str], str] = translate,
    ):
        self.store = store
        self.remote = remote
        self.feed = feed
        self.install_id = install_id
        self.t = t
        self.form = am.AuthForm()

    @property
    def state(self) -> am.AuthFlowState:
        return am.AuthFlowState(session=self.store.state, form=self.form)

    async def dispatch(self, event) -> am.AuthFlowState:
        before = self.store.state
        tr = am.reduce(self.state, event)
        if tr.ignored:
            log(event="auth_event_ignored", installId=self.install_id,
                eventType=type(event).__name__, reason=tr.ignored)

        # State is committed before any await so a concurrent event sees the guards.
        self.form = tr.state.form
        self.store.replace(tr.state.session)

        after = self.store.state
        if (before.step, before.authorized) != (after.step, after.authorized):
            log(event="auth_step_changed", installId=self.install_id,
                fromStep=before.step.value, toStep=after.step.value,
                authorized=after.authorized, eventType=type(event).__name__)

        calls = []
        for effect in tr.effects:
            if isinstance(effect, am.Haptic):
                self.feed.haptic(effect.kind)
            elif isinstance(effect, am.Toast):
                self.feed.toast(effect.level, effect.message)
            else:
                calls.append(effect)

        for effect in calls:
            await self._run(effect)
        return self.state

    async def check_status(self) -> am.AuthFlowState:
        try:
            res = await self.remote.auth_status()
            event = am.StatusChecked(authorized=res.authorized)
        except ChatVibeError as e:
            log(event="auth_status_failed", installId=self.install_id, errorType=type(e).__name__)
            event = am.StatusCheckFailed()
        return await self.dispatch(event)

    async def _run(self, effect) -> None:
        if isinstance(effect, am.CallSendCode):
            try:
                res = await self.remote.send_code(effect.phone)
                outcome = am.CodeSent(message=res.message, resend=effect.resend)
            except ChatVibeError as e:
                outcome = am.SendCodeFailed(
                    message=user_message(e, self.t, fallback_key="auth.sendCodeFailed"),
                    resend=effect.resend,
                )
            await self.dispatch(outcome)

        elif isinstance(effect, am.CallSignIn):
            try:
                res = await self.remote.sign_in(effect.phone, effect.code)
                outcome = am.SignInResolved(
                    need_password=bool(res.needPassword),
                    success=bool(res.success),
                    error=res.error,
                )
            except ChatVibeError as e:
                outcome = am.SignInFailed(message=user_message(e, self.t, fallback_key="auth.verifyCodeFailed"))
            await self.dispatch(outcome)

        elif isinstance(effect, am.CallSubmitPassword):
            try:
                res = await self.remote.submit_password(effect.password)
                outcome = am.PasswordResolved(success=bool(res.success), error=res.error)
            except ChatVibeError as e:
                outcome = am.PasswordFailed(message=user_message(e, self.t, fallback_key="auth.verifyPasswordFailed"))
            await self.dispatch(outcome)

        elif isinstance(effect, am.CallLogout):
            # Local state is already signed out; the remote result is informational.
            try:
                res = await self.remote.logout()
                log(event="logout_remote", installId=self.install_id, success=bool(res.success))
            except ChatVibeError as e:
                log(event="logout_remote_failed", installId=self.install_id, errorType=type(e).__name__)

        else:
            log(event="auth_effect_unknown", installId=self.install_id, effectType=type(effect).__name__)
