"""
Per-instance cache of the group list.

Two keys per instance: the fresh copy (short TTL) answers normal reads,
the stale copy (long TTL) is only served when the gateway rate-limits us.
Redis failures are logged and read as a miss.
"""
import json
import logging
from typing import Any, List, Optional

from redis.exceptions import RedisError

from app.core.config import GROUPS_CACHE_TTL_SECONDS, GROUPS_STALE_TTL_SECONDS

log = logging.getLogger("whatsgroups.cache")


def _key(instance_name: str) -> str:
    return f"groups:{instance_name}"


def _stale_key(instance_name: str) -> str:
    return f"groups:{instance_name}:stale"


class GroupCache:
    def __init__(
        self,
        client=None,
        ttl_seconds: int = GROUPS_CACHE_TTL_SECONDS,
        stale_ttl_seconds: int = GROUPS_STALE_TTL_SECONDS,
    ):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.stale_ttl_seconds = stale_ttl_seconds

    def _read(self, key: str) -> Optional[List[Any]]:
        if self.client is None:
            return None
        try:
            raw = self.client.get(key)
        except RedisError as e:
            log.warning(f"⚠️ Cache read failed for {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            log.warning(f"⚠️ Discarding unreadable cache entry {key}")
            return None

    def get(self, instance_name: str) -> Optional[List[Any]]:
        return self._read(_key(instance_name))

    def get_stale(self, instance_name: str) -> Optional[List[Any]]:
        return self._read(_stale_key(instance_name))

    def set(self, instance_name: str, groups: List[Any]) -> None:
        if self.client is None:
            return
        payload = json.dumps(groups)
        try:
            self.client.setex(_key(instance_name), self.ttl_seconds, payload)
            self.client.setex(_stale_key(instance_name), self.stale_ttl_seconds, payload)
        except RedisError as e:
            log.warning(f"⚠️ Cache write failed for {instance_name}: {e}")

    def invalidate(self, instance_name: str) -> None:
        if self.client is None:
            return
        try:
            self.client.delete(_key(instance_name), _stale_key(instance_name))
        except RedisError as e:
            log.warning(f"⚠️ Cache invalidation failed for {instance_name}: {e}")
