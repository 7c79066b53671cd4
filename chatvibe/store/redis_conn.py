from functools import lru_cache

from redis import ConnectionPool, Redis
from chatvibe.settings import settings


@lru_cache(maxsize=None)
def _pool(url: str) -> ConnectionPool:
    return ConnectionPool.from_url(url, decode_responses=True)


def get_redis() -> Redis:
    """Text-mode client for the per-device marker and intro keys; one pool per URL."""
    return Redis(connection_pool=_pool(settings.REDIS_URL))
