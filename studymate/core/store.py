# studymate/core/store.py
"""Durable key/value device store backends."""
import logging
from typing import Dict, Iterable, Optional, Protocol

import redis.asyncio as redis

from .config import settings
from .exceptions import StoreError

logger = logging.getLogger(__name__)


class DeviceStore(Protocol):
    """Key -> JSON string persistence that survives process restarts."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...

    async def multi_remove(self, keys: Iterable[str]) -> None: ...


class RedisDeviceStore:
    def __init__(self, url: Optional[str] = None, namespace: str = ""):
        self.url = url or settings.redis_url
        self.namespace = namespace
        self.redis: Optional[redis.Redis] = None

    async def connect(self):
        """Initialize Redis connection."""
        if not self.redis:
            self.redis = redis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True
            )

    async def disconnect(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}" if self.namespace else key

    async def get(self, key: str) -> Optional[str]:
        if not self.redis:
            await self.connect()

        try:
            return await self.redis.get(self._key(key))
        except redis.RedisError as e:
            raise StoreError("get", key, str(e)) from e

    async def set(self, key: str, value: str) -> None:
        if not self.redis:
            await self.connect()

        try:
            await self.redis.set(self._key(key), value)
        except redis.RedisError as e:
            raise StoreError("set", key, str(e)) from e

    async def remove(self, key: str) -> None:
        if not self.redis:
            await self.connect()

        try:
            await self.redis.delete(self._key(key))
        except redis.RedisError as e:
            raise StoreError("remove", key, str(e)) from e

    async def multi_remove(self, keys: Iterable[str]) -> None:
        if not self.redis:
            await self.connect()

        names = [self._key(k) for k in keys]
        if not names:
            return
        try:
            await self.redis.delete(*names)
        except redis.RedisError as e:
            raise StoreError("multi_remove", ",".join(names), str(e)) from e


class MemoryDeviceStore:
    """Process-local store for offline use and tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Device store values must be str, got {type(value).__name__}")
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.data.pop(key, None)
