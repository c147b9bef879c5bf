import os
import time
from typing import Optional

import redis

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")


class KVStore:
    """
    String key-value store with per-key TTL.

    Backed by redis; falls back to a process-local dict when redis does not
    answer the first ping. Errors raised by redis after that point propagate
    to the caller as ``redis.RedisError``.
    """

    def __init__(self, url: str = REDIS_URL):
        self._url = url
        self._client = None
        self._available = True
        self._mem = {}

    def _get_redis(self):
        if not self._available:
            return None
        if self._client is None:
            client = redis.Redis.from_url(self._url, decode_responses=True)
            try:
                client.ping()
            except redis.RedisError:
                self._available = False
                return None
            self._client = client
        return self._client

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, data in self._mem.items() if data.get("expires_at_ts") and now >= data["expires_at_ts"]]
        for k in expired:
            self._mem.pop(k, None)

    def _mem_get(self, key: str) -> Optional[str]:
        data = self._mem.get(key)
        if not data:
            return None
        expires_ts = data.get("expires_at_ts") or 0
        if expires_ts and time.time() >= expires_ts:
            self._mem.pop(key, None)
            return None
        return data["value"]

    def get(self, key: str) -> Optional[str]:
        client = self._get_redis()
        if client is None:
            return self._mem_get(key)
        return client.get(key)

    def put(self, key: str, value: str, ttl_sec: int) -> None:
        client = self._get_redis()
        if client is None:
            now = time.time()
            self._purge_expired(now)
            self._mem[key] = {"value": value, "expires_at_ts": now + ttl_sec}
            return
        client.set(key, value, ex=ttl_sec)


usage_store = KVStore()
