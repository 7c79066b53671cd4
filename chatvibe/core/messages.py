"""
User-facing status strings.

The UI owns localization; the service only chooses a message key. `translate`
falls back to the English catalog below so status fields are always readable.
"""
import re
from typing import Callable, Optional

from chatvibe.core.errors import ChatVibeError, DomainError, ValidationError

GENERIC = "errors.generic"

ERROR_TO_KEY = {
    "INVALID_REQUEST": "errors.api.invalidRequest",
    "FLOOD_WAIT": "errors.api.floodWait",
    "INVALID_PHONE_NUMBER": "errors.api.invalidPhoneNumber",
    "PHONE_NUMBER_INVALID": "errors.api.invalidPhoneNumber",
    "NO_SESSION_FOUND": "errors.api.noSessionFound",
    "PHONE_CODE_EXPIRED": "errors.api.phoneCodeExpired",
    "PHONE_CODE_INVALID": "errors.api.phoneCodeInvalid",
    "INVALID_CODE": "errors.api.phoneCodeInvalid",
    "NOT_AUTHORIZED": "errors.api.notAuthorized",
    "CHAT_NOT_FOUND": "errors.api.chatNotFound",
}

DEFAULT_CATALOG = {
    GENERIC: "Something went wrong. Please try again.",
    "errors.api.invalidRequest": "Invalid request.",
    "errors.api.floodWait": "Too many attempts. Please wait and try again later.",
    "errors.api.invalidPhoneNumber": "Invalid phone number.",
    "errors.api.noSessionFound": "Session not found. Please request a new code.",
    "errors.api.phoneCodeExpired": "The code has expired. Please request a new one.",
    "errors.api.phoneCodeInvalid": "Invalid code.",
    "errors.api.notAuthorized": "You are not signed in.",
    "errors.api.chatNotFound": "Chat not found.",
    "auth.enterPhone": "Please enter a phone number",
    "auth.phoneLength": "Phone number must contain 7 to 16 digits",
    "auth.sendingCode": "Sending verification code...",
    "auth.codeSent": "Code sent! Check your Telegram app",
    "auth.sendCodeFailed": "Failed to send code. Please try again.",
    "auth.verifyingCode": "Verifying code...",
    "auth.invalidCode": "Invalid code",
    "auth.verifyCodeFailed": "Failed to verify code. Please try again.",
    "auth.needPassword": "2FA enabled. Please enter your password",
    "auth.enterPassword": "Please enter your password",
    "auth.verifyingPassword": "Verifying password...",
    "auth.invalidPassword": "Invalid password",
    "auth.verifyPasswordFailed": "Failed to verify password. Please try again.",
    "auth.success": "Successfully authenticated!",
    "auth.sessionExpired": "Your session has expired. Please sign in again.",
    "analysis.success": "Analysis is ready",
    "analysis.failed": "Failed to analyze chat. Please try again.",
    "analysis.drawerNotOpen": "Open the chat's analysis drawer first.",
    "analysis.unknownCategory": "Unknown analysis type.",
}

_WS = re.compile(r"\s+")


def translate(key: str) -> str:
    return DEFAULT_CATALOG.get(key, key)


def normalize_error_code(raw) -> Optional[str]:
    if not isinstance(raw, str) or not raw.strip():
        return None
    return _WS.sub("_", raw.strip().upper())


def error_message_key(code: Optional[str]) -> Optional[str]:
    if not code:
        return None
    return ERROR_TO_KEY.get(normalize_error_code(code))


def user_message(
    err: ChatVibeError,
    t: Callable[[str], str] = translate,
    fallback_key: str = GENERIC,
) -> str:
    """Map any recovered error to one user-facing string."""
    if isinstance(err, ValidationError):
        return t(err.message_key)
    if isinstance(err, DomainError):
        key = error_message_key(err.code)
        if key:
            return t(key)
    return t(fallback_key)
