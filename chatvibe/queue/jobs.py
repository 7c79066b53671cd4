from chatvibe.notify.client import send_push_http
from chatvibe.observability.logging import log

def deliver_notification_job(install_id: str, notification: dict) -> bool:
    """
    Background job: hand one "analysis ready" notification to the push gateway.
    Best-effort; a failed delivery is logged and not retried.
    """
    log(event="notification_job_start", installId=install_id, chatId=(notification.get("data") or {}).get("chatId"))
    ok, _status, _error = send_push_http(install_id, notification)
    return ok
