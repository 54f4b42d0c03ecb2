# src/pennant/drivers/redis.py
from __future__ import annotations

import os
from typing import Optional

import redis.asyncio as redis

from pennant.core.logging import get_logger
from pennant.kernel.storage import coerce_stored_value

log = get_logger(__name__)

DEFAULT_PREFIX = "pennant:flag:"


def _make(url: str) -> redis.Redis:
    return redis.from_url(
        url,
        decode_responses=True,
        health_check_interval=int(os.getenv("REDIS_HEALTHCHECK_SEC", "30")),
        socket_timeout=float(os.getenv("REDIS_SOCKET_TIMEOUT", "5")),
        socket_connect_timeout=float(os.getenv("REDIS_CONNECT_TIMEOUT", "5")),
        retry_on_timeout=True,
        max_connections=int(os.getenv("REDIS_MAX_CONNS", "50")),
    )


class RedisDriver:
    """Flags as plain string keys: <prefix><flag> -> "1" | "0"."""

    def __init__(self, client: redis.Redis, prefix: str = DEFAULT_PREFIX, *, owns_client: bool = False):
        self._client = client
        self._prefix = prefix
        self._owns_client = owns_client

    def _key(self, flag: str) -> str:
        return f"{self._prefix}{flag}"

    async def set(self, flag: str, value: bool) -> None:
        await self._client.set(self._key(flag), "1" if value else "0")

    async def get(self, flag: str) -> Optional[bool]:
        return coerce_stored_value(await self._client.get(self._key(flag)))

    async def delete(self, flag: str) -> None:
        await self._client.delete(self._key(flag))

    async def initialize(self) -> None:
        """Fail fast at startup if Redis is unreachable."""
        await self._client.ping()
        log.info("store(redis) connected prefix=%s", self._prefix)

    def is_persistent_store(self) -> bool:
        return True

    async def close(self) -> None:
        """Close the client only if this driver created it."""
        if self._owns_client:
            await self._client.aclose()


def create_redis_driver(url: str, prefix: str = DEFAULT_PREFIX) -> RedisDriver:
    return RedisDriver(_make(url), prefix=prefix, owns_client=True)
