"""Consumer-facing access to an open cart."""
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Optional, Union

from gomarket.config import CartSettings
from gomarket.errors import ERROR_CART_SCOPE, CartScopeError
from .models import CartState

if TYPE_CHECKING:
    from .service import CartStore
    from .storage import CartSnapshotStorage, KeyValueStore


@dataclass(frozen=True)
class CartContext:
    """What consumers see: current products and the mutators."""
    products: CartState
    add_to_cart: Callable[[Any], CartState]
    increment: Callable[[str], CartState]
    decrement: Callable[[str], CartState]


def use_cart(store: Optional["CartStore"]) -> CartContext:
    """
    Get the cart facade from a store handed to the caller.

    Raises:
        CartScopeError: store is missing, not loaded yet or already closed
    """
    if store is None or not store.is_open:
        raise CartScopeError(ERROR_CART_SCOPE)
    return store.context


@asynccontextmanager
async def cart_session(
    storage: Union["CartSnapshotStorage", "KeyValueStore"],
    settings: Optional[CartSettings] = None,
) -> AsyncIterator["CartStore"]:
    """
    Open a cart for the duration of the block.

    Usage:
        async with cart_session(RedisKeyValueStore()) as store:
            cart = use_cart(store)
            cart.add_to_cart({...})

    The store is loaded before the block runs and flushed/closed after it.
    """
    from .service import CartStore
    from .storage import CartSnapshotStorage

    if not isinstance(storage, CartSnapshotStorage):
        storage = CartSnapshotStorage(storage, settings)

    store = CartStore(storage)
    await store.load()
    try:
        yield store
    finally:
        await store.close()
