"""Cart package: models, storage, state machine and access facade."""
from .context import CartContext, cart_session, use_cart
from .models import LineItem, ProductDescriptor, decode_snapshot, encode_snapshot
from .service import CartStore
from .storage import CartSnapshotStorage, KeyValueStore, MemoryKeyValueStore, RedisKeyValueStore

__all__ = [
    "CartContext",
    "CartSnapshotStorage",
    "CartStore",
    "KeyValueStore",
    "LineItem",
    "MemoryKeyValueStore",
    "ProductDescriptor",
    "RedisKeyValueStore",
    "cart_session",
    "decode_snapshot",
    "encode_snapshot",
    "use_cart",
]
