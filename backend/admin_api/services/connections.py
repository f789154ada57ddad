"""Connection helpers shared by the API process and the worker."""
from __future__ import annotations

from redis import Redis

from ..settings import AdminSettings


def create_redis_connection(settings: AdminSettings) -> Redis:
    """Instantiate a Redis connection, supporting fakeredis for tests."""

    url = settings.redis_url
    if url.startswith("fakeredis://"):
        import fakeredis

        return fakeredis.FakeRedis()
    return Redis.from_url(url)
