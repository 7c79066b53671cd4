from typing import Optional

from redis import Redis
from rq import Queue
from chatvibe.settings import settings

# A delivery job is one gateway POST; anything past this is a stuck worker.
JOB_TIMEOUT_SEC = 60


def get_queue(name: Optional[str] = None) -> Queue:
    # RQ stores pickled jobs, so this connection must not decode responses
    conn = Redis.from_url(settings.REDIS_URL)
    return Queue(name or settings.RQ_QUEUE_NAME, connection=conn, default_timeout=JOB_TIMEOUT_SEC)
