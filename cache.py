"""Shared key-value cache backed by Redis."""

import json
import logging
import os

import redis

logger = logging.getLogger(__name__)

REDIS_URL = os.environ.get("REDIS_URL", "")
CACHE_KEY_PREFIX = os.environ.get("CACHE_KEY_PREFIX", "staffing:")
REDIS_DISABLED_URL = "memory://"


class RedisStore:
    """JSON values under a key prefix. Errors are left to the caller."""

    def __init__(self, client, prefix: str = CACHE_KEY_PREFIX):
        self.client = client
        self.prefix = prefix

    def get(self, key: str, default=None):
        raw = self.client.get(self.prefix + key)
        if raw is None:
            return default
        return json.loads(raw)

    def set(self, key: str, value) -> None:
        self.client.set(self.prefix + key, json.dumps(value))


def get_store(url: str = None):
    """Return a RedisStore for the configured URL, or None when caching is off."""
    url = (REDIS_URL if url is None else url).strip()
    if not url or url.lower() == REDIS_DISABLED_URL:
        logger.info("REDIS_URL not set; table names are cached in-process only")
        return None
    client = redis.Redis.from_url(
        url,
        socket_connect_timeout=2.0,
        socket_timeout=2.0,
        decode_responses=True,
    )
    return RedisStore(client)
