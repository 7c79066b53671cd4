import time
from typing import Optional, Tuple

import httpx

from chatvibe.settings import settings
from chatvibe.observability.logging import log


def send_push_http(install_id: str, notification: dict, timeout: Optional[float] = None) -> Tuple[bool, int, Optional[str]]:
    """
    POST one notification to the push gateway.
    Returns (success, status_code, error). Never raises; delivery is best-effort.
    """
    if not settings.PUSH_GATEWAY_URL:
        log(event="notification_skipped_no_url", installId=install_id)
        return False, 0, "PUSH_GATEWAY_URL is not set"

    body = {"installId": install_id, "notification": notification}
    start = time.time()
    try:
        with httpx.Client(timeout=timeout or settings.PUSH_TIMEOUT_SEC) as client:
            resp = client.post(settings.PUSH_GATEWAY_URL, json=body)
        elapsed_ms = int((time.time() - start) * 1000)

        if 200 <= resp.status_code < 300:
            log(event="notification_delivered", installId=install_id, statusCode=resp.status_code, elapsedMs=elapsed_ms)
            return True, resp.status_code, None

        log(
            event="notification_failed",
            installId=install_id,
            statusCode=resp.status_code,
            elapsedMs=elapsed_ms,
            responseText=(resp.text or "")[:300],
        )
        return False, resp.status_code, f"non_2xx:{resp.status_code}"
    except httpx.HTTPError as e:
        log(
            event="notification_failed",
            installId=install_id,
            elapsedMs=int((time.time() - start) * 1000),
            errorType=type(e).__name__,
            error=str(e)[:300],
        )
        return False, 0, f"{type(e).__name__}:{str(e)[:200]}"
