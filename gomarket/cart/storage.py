"""Key-value backends and snapshot storage for the cart."""
import logging
from typing import Dict, Optional, Protocol, Sequence

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from gomarket.config import CartSettings
from gomarket.errors import ERROR_STORAGE_READ, ERROR_STORAGE_WRITE, PersistenceError
from gomarket.logging import get_logger
from .models import CartState, LineItem, decode_snapshot, encode_snapshot

logger = get_logger(__name__)


class KeyValueStore(Protocol):
    """String blob store the cart persists into."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...


class RedisKeyValueStore:
    """KeyValueStore on top of the async Upstash Redis client."""

    def __init__(self, redis=None):
        self._redis = redis  # Lazy initialization

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            from gomarket.db import get_redis
            self._redis = get_redis()
        return self._redis

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.redis.get(key)
        except Exception as e:
            raise PersistenceError(f"{ERROR_STORAGE_READ}: {e}", key=key) from e
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    async def set(self, key: str, value: str) -> None:
        try:
            await self.redis.set(key, value)
        except Exception as e:
            raise PersistenceError(f"{ERROR_STORAGE_WRITE}: {e}", key=key) from e


class MemoryKeyValueStore:
    """Dict-backed KeyValueStore for local runs and tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value


class CartSnapshotStorage:
    """
    Reads and writes the whole cart under a single key.

    The same key is used for load and save. Every save is one `set`
    of the full collection, retried on PersistenceError.
    """

    def __init__(self, store: KeyValueStore, settings: Optional[CartSettings] = None):
        self.store = store
        self.settings = settings or CartSettings.from_env()

    @property
    def key(self) -> str:
        return self.settings.storage_key

    async def read(self) -> Optional[str]:
        """Raw snapshot blob, or None when nothing was saved yet."""
        try:
            return await self.store.get(self.key)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"{ERROR_STORAGE_READ}: {e}", key=self.key) from e

    async def load(self) -> Optional[CartState]:
        """
        Load the persisted cart.

        Returns None when no snapshot exists.

        Raises:
            PersistenceError: backend failure
            SnapshotDecodeError: snapshot exists but is unreadable
        """
        raw = await self.read()
        if raw is None or raw == "":
            return None
        return decode_snapshot(raw)

    async def save(self, products: Sequence[LineItem]) -> None:
        """Overwrite the snapshot with the full collection."""
        payload = encode_snapshot(products)
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.settings.save_attempts),
            wait=wait_exponential(multiplier=0.1, max=self.settings.save_backoff_max),
            retry=retry_if_exception_type(PersistenceError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                await self._write(payload)

    async def _write(self, payload: str) -> None:
        try:
            await self.store.set(self.key, payload)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"{ERROR_STORAGE_WRITE}: {e}", key=self.key) from e
