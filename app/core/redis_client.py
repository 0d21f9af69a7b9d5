"""Redis client helper with connection pooling."""

from app.core.config import REDIS_URL

REDIS_DISABLED_URL = "memory://"
DEFAULT_REDIS_MAX_CONNECTIONS = 20
DEFAULT_REDIS_CONNECT_TIMEOUT_SECONDS = 2.0
DEFAULT_REDIS_SOCKET_TIMEOUT_SECONDS = 2.0

_client = None


def get_redis_url():
    url = REDIS_URL
    if not url or url.strip().lower() == REDIS_DISABLED_URL:
        return None
    return url.strip()


def get_redis_client():
    """Shared sync client, or None when Redis is not configured."""
    url = get_redis_url()
    if not url:
        return None

    global _client
    if _client is None:
        import redis

        pool = redis.ConnectionPool.from_url(
            url,
            max_connections=DEFAULT_REDIS_MAX_CONNECTIONS,
            socket_connect_timeout=DEFAULT_REDIS_CONNECT_TIMEOUT_SECONDS,
            socket_timeout=DEFAULT_REDIS_SOCKET_TIMEOUT_SECONDS,
            retry_on_timeout=True,
        )
        _client = redis.Redis(connection_pool=pool)
    return _client
