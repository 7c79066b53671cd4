from typing import Protocol

from chatvibe.observability.logging import log


class Notifier(Protocol):
    def schedule(self, install_id: str, notification: dict) -> None:
        ...


class QueueNotifier:
    """
    Schedules notifications for immediate delivery on the RQ queue.
    Raises if the queue is unreachable so the caller can fall back.
    """

    def schedule(self, install_id: str, notification: dict) -> None:
        # Lazy imports keep the API importable without a reachable Redis
        from chatvibe.queue.jobs import deliver_notification_job
        from chatvibe.queue.rq_conn import get_queue

        q = get_queue()
        job = q.enqueue(deliver_notification_job, install_id, notification)
        log(
            event="notification_enqueued",
            installId=install_id,
            job="deliver_notification_job",
            rq_job_id=getattr(job, "id", "") or "",
            chatId=(notification.get("data") or {}).get("chatId"),
        )
