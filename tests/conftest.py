"""Pytest configuration and fixtures"""
import asyncio
import os
from typing import Dict, List, Optional

import pytest
import pytest_asyncio

# Set test environment variables
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")

from gomarket.config import CartSettings
from gomarket.cart import CartSnapshotStorage, CartStore, MemoryKeyValueStore
from gomarket.errors import PersistenceError

TEST_KEY = "@GoMarketplace:products"


class RecordingStore(MemoryKeyValueStore):
    """Memory store that remembers every read and write."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__(initial)
        self.reads: List[str] = []
        self.writes: List[tuple] = []

    async def get(self, key: str) -> Optional[str]:
        self.reads.append(key)
        return await super().get(key)

    async def set(self, key: str, value: str) -> None:
        self.writes.append((key, value))
        await super().set(key, value)


class FlakyStore(RecordingStore):
    """Fails the first `failures` writes, then behaves."""

    def __init__(self, failures: int, initial: Optional[Dict[str, str]] = None):
        super().__init__(initial)
        self.failures = failures
        self.attempts = 0

    async def set(self, key: str, value: str) -> None:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise PersistenceError("backend unavailable", key=key)
        await super().set(key, value)


class GatedStore(RecordingStore):
    """Blocks each write until the test releases it."""

    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def set(self, key: str, value: str) -> None:
        self.started.set()
        await self.release.wait()
        await super().set(key, value)


@pytest.fixture
def cart_settings():
    """Settings with no retry backoff"""
    return CartSettings(storage_key=TEST_KEY, save_attempts=3, save_backoff_max=0)


@pytest.fixture
def memory_store():
    return RecordingStore()


@pytest.fixture
def snapshot_storage(memory_store, cart_settings):
    return CartSnapshotStorage(memory_store, cart_settings)


@pytest_asyncio.fixture
async def cart_store(snapshot_storage):
    """Loaded cart store backed by memory"""
    store = CartStore(snapshot_storage)
    await store.load()
    yield store
    await store.close()


@pytest.fixture
def sample_product():
    """Sample product descriptor"""
    return {
        "id": "p1",
        "title": "Shirt",
        "image_url": "https://cdn.example.com/shirt.png",
        "price": 10,
    }


@pytest.fixture
def make_product():
    def _make(product_id: str, title: Optional[str] = None, price: float = 10):
        return {
            "id": product_id,
            "title": title or f"Product {product_id}",
            "image_url": f"https://cdn.example.com/{product_id}.png",
            "price": price,
        }
    return _make


class SlowReadStore(RecordingStore):
    """Blocks each read until the test releases it."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__(initial)
        self.release = asyncio.Event()

    async def get(self, key: str) -> Optional[str]:
        self.reads.append(key)
        await self.release.wait()
        return self.data.get(key)
