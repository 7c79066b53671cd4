from dataclasses import replace

from chatvibe.core import auth_machine as am
from chatvibe.core.code_entry import CodeEntry
from chatvibe.store.models import AuthState, Step


def _code_step(phone="+79991234567"):
    session = AuthState(checked=True, phone=phone, step=Step.CODE)
    form = am.AuthForm(code=CodeEntry.cleared())
    return am.AuthFlowState(session=session, form=form)


def _type_code(state, digits):
    effects = []
    for i, d in enumerate(digits):
        tr = am.reduce(state, am.CodeInput(index=i, text=d))
        state = tr.state
        effects.extend(tr.effects)
    return state, effects


def test_status_checked_sets_checked_and_authorized():
    tr = am.reduce(am.AuthFlowState(), am.StatusChecked(authorized=True))
    assert tr.state.session.checked is True
    assert tr.state.session.authorized is True


def test_status_check_failure_treated_as_unauthorized():
    tr = am.reduce(am.AuthFlowState(), am.StatusCheckFailed())
    assert tr.state.session.checked is True
    assert tr.state.session.authorized is False
    assert tr.effects == ()


def test_submit_phone_builds_full_number_and_sends_code():
    state = am.AuthFlowState(form=am.AuthForm(country_code="+7"))
    tr = am.reduce(state, am.SubmitPhone(raw="999 123-45-67"))
    assert tr.state.session.phone == "+79991234567"
    assert tr.state.form.busy is True
    assert tr.effects == (am.CallSendCode(phone="+79991234567"),)


def test_short_or_empty_phone_sets_status_without_call():
    state = am.AuthFlowState()
    empty = am.reduce(state, am.SubmitPhone(raw=""))
    assert empty.effects == ()
    assert empty.state.form.status == "Please enter a phone number"

    short = am.reduce(state, am.SubmitPhone(raw="12345"))
    assert short.effects == ()
    assert short.state.form.status == "Phone number must contain 7 to 16 digits"
    assert short.state.session.step == Step.PHONE

    long_ = am.reduce(state, am.SubmitPhone(raw="1" * 17))
    assert long_.effects == ()


def test_submit_phone_while_busy_is_ignored():
    state = am.AuthFlowState(form=am.AuthForm(busy=True))
    tr = am.reduce(state, am.SubmitPhone(raw="9991234567"))
    assert tr.ignored == "request_outstanding"
    assert tr.effects == ()


def test_failed_recheck_keeps_authorized_session():
    state = am.AuthFlowState(session=AuthState(authorized=True, checked=True, phone="+79991234567", step=Step.CODE))
    tr = am.reduce(state, am.StatusCheckFailed())
    assert tr.ignored == "already_authorized"
    assert tr.state.session.authorized is True
    assert tr.state.session.phone == "+79991234567"


def test_recheck_reporting_unauthorized_signs_out_fully():
    state = am.AuthFlowState(session=AuthState(authorized=True, checked=True, phone="+79991234567", step=Step.CODE))
    tr = am.reduce(state, am.StatusChecked(authorized=False))
    assert tr.state.session == AuthState(authorized=False, checked=True, phone="", step=Step.PHONE)


def test_country_code_gets_plus_prefix():
    tr = am.reduce(am.AuthFlowState(), am.CountrySelected(code="380"))
    assert tr.state.form.country_code == "+380"


def test_code_sent_moves_to_code_step():
    state = am.reduce(am.AuthFlowState(), am.SubmitPhone(raw="9991234567")).state
    tr = am.reduce(state, am.CodeSent(message=None))
    assert tr.state.session.step == Step.CODE
    assert tr.state.form.busy is False
    assert tr.state.form.code.focus == 0
    assert tr.state.form.status == "Code sent! Check your Telegram app"


def test_code_sent_without_pending_request_is_stale():
    tr = am.reduce(am.AuthFlowState(), am.CodeSent())
    assert tr.ignored == "stale_result"
    assert tr.state.session.step == Step.PHONE


def test_send_code_failure_stays_on_phone():
    state = am.reduce(am.AuthFlowState(), am.SubmitPhone(raw="9991234567")).state
    tr = am.reduce(state, am.SendCodeFailed(message="Invalid phone number."))
    assert tr.state.session.step == Step.PHONE
    assert tr.state.form.busy is False
    assert tr.state.form.status == "Invalid phone number."


def test_complete_code_submits_exactly_once():
    state, effects = _type_code(_code_step(), "42019")
    assert effects == [am.CallSignIn(phone="+79991234567", code="42019")]
    assert state.form.submitting_code is True

    # re-entering the last digit while in flight does not submit again
    again = am.reduce(state, am.CodeInput(index=4, text="9"))
    assert again.effects == ()


def test_same_code_not_resubmitted_after_rejection():
    state, _ = _type_code(_code_step(), "11111")
    tr = am.reduce(state, am.SignInResolved(success=False))
    assert tr.state.form.code_error is True
    assert tr.effects == (am.Haptic("error"),)

    same = am.reduce(tr.state, am.CodeFocus(index=2))
    assert same.effects == ()


def test_editing_after_rejection_rearms_autosubmit():
    state, _ = _type_code(_code_step(), "11111")
    state = am.reduce(state, am.SignInResolved(success=False)).state
    state = am.reduce(state, am.CodeBackspace(index=4)).state
    assert state.form.code_error is False
    tr = am.reduce(state, am.CodeInput(index=4, text="2"))
    assert tr.effects == (am.CallSignIn(phone="+79991234567", code="11112"),)


def test_need_password_moves_to_password_step():
    state, _ = _type_code(_code_step(), "42019")
    tr = am.reduce(state, am.SignInResolved(need_password=True))
    assert tr.state.session.step == Step.PASSWORD
    assert tr.state.session.authorized is False
    assert tr.state.form.submitting_code is False


def test_sign_in_success_authorizes_with_success_haptic():
    state, _ = _type_code(_code_step(), "42019")
    tr = am.reduce(state, am.SignInResolved(success=True))
    assert tr.state.session.authorized is True
    assert tr.state.form.code_error is False
    assert tr.effects == (am.Haptic("success"),)


def test_sign_in_transport_failure_flags_code_error():
    state, _ = _type_code(_code_step(), "42019")
    tr = am.reduce(state, am.SignInFailed(message="Failed to verify code. Please try again."))
    assert tr.state.form.code_error is True
    assert tr.state.session.step == Step.CODE
    assert am.Haptic("error") in tr.effects


def test_resend_code_is_guarded():
    state = _code_step()
    tr = am.reduce(state, am.ResendCode())
    assert tr.effects == (am.CallSendCode(phone="+79991234567", resend=True),)
    again = am.reduce(tr.state, am.ResendCode())
    assert again.ignored == "request_outstanding"

    done = am.reduce(tr.state, am.CodeSent(message="sent", resend=True))
    assert done.state.form.resending is False
    assert done.state.session.step == Step.CODE


def _password_step():
    state, _ = _type_code(_code_step(), "42019")
    return am.reduce(state, am.SignInResolved(need_password=True)).state


def test_empty_password_is_not_submitted():
    tr = am.reduce(_password_step(), am.SubmitPassword(password="   "))
    assert tr.effects == ()
    assert tr.state.form.status == "Please enter your password"


def test_password_is_trimmed_and_submitted():
    tr = am.reduce(_password_step(), am.SubmitPassword(password="  hunter2 "))
    assert tr.effects == (am.CallSubmitPassword(password="hunter2"),)
    assert tr.state.form.busy is True


def test_password_rejected_then_accepted():
    state = am.reduce(_password_step(), am.SubmitPassword(password="bad")).state
    rejected = am.reduce(state, am.PasswordResolved(success=False, error="Wrong password"))
    assert rejected.state.form.password_error is True
    assert rejected.state.form.status == "Wrong password"
    assert rejected.effects == (am.Haptic("error"),)

    state = am.reduce(rejected.state, am.SubmitPassword(password="good")).state
    ok = am.reduce(state, am.PasswordResolved(success=True))
    assert ok.state.session.authorized is True
    assert ok.effects == (am.Haptic("success"),)


def test_back_from_password_resets_to_phone():
    state = am.reduce(_password_step(), am.PasswordChanged(value="secret")).state
    tr = am.reduce(state, am.Back())
    assert tr.state.session.step == Step.PHONE
    assert tr.state.form.password == ""
    assert tr.state.form.code.value == ""
    assert tr.state.form.country_code == "+7"


def test_back_on_phone_step_is_ignored():
    tr = am.reduce(am.AuthFlowState(), am.Back())
    assert tr.ignored == "wrong_step"


def test_stale_sign_in_after_back_is_dropped():
    state, _ = _type_code(_code_step(), "42019")
    state = am.reduce(state, am.Back()).state
    tr = am.reduce(state, am.SignInResolved(success=True))
    assert tr.ignored == "stale_result"
    assert tr.state.session.authorized is False


def test_step_events_ignored_once_authorized():
    state = am.AuthFlowState(session=AuthState(authorized=True, checked=True))
    tr = am.reduce(state, am.SubmitPhone(raw="9991234567"))
    assert tr.ignored == "already_authorized"
    assert tr.effects == ()


def test_logout_resets_session_and_calls_remote():
    state = am.AuthFlowState(session=AuthState(authorized=True, checked=True, phone="+79991234567"))
    tr = am.reduce(state, am.Logout())
    assert tr.state.session == AuthState(authorized=False, checked=True, phone="", step=Step.PHONE)
    assert tr.effects == (am.CallLogout(),)


def test_session_expiry_only_applies_when_authorized():
    unauth = am.reduce(am.AuthFlowState(), am.SessionExpiredDetected())
    assert unauth.ignored == "not_authorized"

    state = am.AuthFlowState(session=AuthState(authorized=True, checked=True))
    tr = am.reduce(state, am.SessionExpiredDetected())
    assert tr.state.session.authorized is False
    assert am.CallLogout() in tr.effects
    assert any(isinstance(e, am.Toast) and e.level == "error" for e in tr.effects)


def test_unknown_event_is_ignored():
    tr = am.reduce(am.AuthFlowState(), object())
    assert tr.ignored == "unknown_event"


def test_phone_validation_bounds():
    assert not am.phone_is_valid("123456")
    assert am.phone_is_valid("1234567")
    assert am.phone_is_valid("1" * 16)
    assert not am.phone_is_valid("1" * 17)
    assert am.digits_only("+7 (999) 12") == "799912"


def test_code_edits_outside_code_step_are_ignored():
    state = replace(_code_step(), session=AuthState(step=Step.PHONE))
    tr = am.reduce(state, am.CodeInput(index=0, text="1"))
    assert tr.ignored == "wrong_step"


def test_need_password_wins_over_success():
    state, _ = _type_code(_code_step(), "42019")
    tr = am.reduce(state, am.SignInResolved(need_password=True, success=True))
    assert tr.state.session.step == Step.PASSWORD
    assert tr.state.session.authorized is False
    assert tr.effects == ()


def test_back_from_code_clears_entry_and_status():
    state, _ = _type_code(_code_step(), "420")
    state = replace(state, form=replace(state.form, status="Code sent! Check your Telegram app"))
    tr = am.reduce(state, am.Back())
    assert tr.state.session.step == Step.PHONE
    assert tr.state.form.code == CodeEntry()
    assert tr.state.form.status is None
    assert tr.state.form.code_error is False
