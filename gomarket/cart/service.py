"""Cart state machine with background snapshot persistence."""
import asyncio
from typing import Any, Optional

from gomarket.errors import (
    ERROR_CART_CLOSED,
    ERROR_CART_NOT_LOADED,
    CartScopeError,
    PersistenceError,
    ProductNotFoundError,
)
from gomarket.logging import get_logger, sanitize_id_for_logging
from .context import CartContext
from .models import CartState, LineItem, SnapshotDecodeError, coerce_descriptor
from .storage import CartSnapshotStorage

logger = get_logger(__name__)


class CartStore:
    """
    Owns the cart and is its only writer.

    Lifecycle:
    - `await load()` reads the persisted snapshot once
    - mutators update in-memory state synchronously, then schedule a save
    - `await close()` waits for pending saves and ends the session

    State is an immutable tuple; every mutation publishes a new one, so a
    snapshot being written in the background is never modified underneath.
    Saves run on a single writer task that always writes the latest state,
    so bursts of mutations coalesce and the last completed write matches
    memory.
    """

    def __init__(self, storage: CartSnapshotStorage):
        self.storage = storage
        self._products: CartState = ()
        self._loaded = False
        self._closed = False
        self._dirty = False
        self._loader: Optional[asyncio.Task] = None
        self._writer: Optional[asyncio.Task] = None
        self._writer_error: Optional[BaseException] = None
        self._context: Optional[CartContext] = None
        self.failed_writes = 0
        self.last_persistence_error: Optional[PersistenceError] = None

    # ==================== State ====================

    @property
    def products(self) -> CartState:
        """Current line items in insertion order."""
        return self._products

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_open(self) -> bool:
        return self._loaded and not self._closed

    @property
    def total_items(self) -> int:
        """Total number of units in cart."""
        return sum(item.quantity for item in self._products)

    @property
    def is_empty(self) -> bool:
        return not self._products

    def get_item(self, product_id: str) -> Optional[LineItem]:
        index = self._index_of(product_id)
        return self._products[index] if index >= 0 else None

    @property
    def context(self) -> CartContext:
        """Facade for consumers, rebuilt only when state changes."""
        self._ensure_open()
        if self._context is None or self._context.products is not self._products:
            self._context = CartContext(
                products=self._products,
                add_to_cart=self.add_to_cart,
                increment=self.increment,
                decrement=self.decrement,
            )
        return self._context

    # ==================== Lifecycle ====================

    async def load(self) -> CartState:
        """
        Adopt the persisted snapshot as the initial state.

        Never raises for storage problems: a missing, unreadable or
        unreachable snapshot all start an empty cart. Loading does not
        write anything back. Overlapping calls share one read.
        """
        if self._closed:
            raise CartScopeError(ERROR_CART_CLOSED)
        if self._loaded:
            logger.warning("Cart already loaded, ignoring repeated load")
            return self._products

        if self._loader is None:
            self._loader = asyncio.get_running_loop().create_task(self._read_snapshot())
        await self._loader
        return self._products

    async def _read_snapshot(self) -> None:
        snapshot: Optional[CartState] = None
        try:
            snapshot = await self.storage.load()
        except SnapshotDecodeError as e:
            logger.warning(f"Corrupted cart snapshot under {self.storage.key}: {e}")
        except PersistenceError as e:
            logger.error(f"Failed to load cart, starting empty: {e}")

        if snapshot is None:
            logger.debug("No cart snapshot found, starting empty")
        else:
            logger.info(f"Loaded cart with {len(snapshot)} item(s)")

        self._products = snapshot or ()
        self._loaded = True

    async def flush(self) -> None:
        """
        Wait until every scheduled save has completed.

        Re-raises an unexpected error from a finished writer once.
        """
        while self._writer is not None and not self._writer.done():
            await asyncio.wait({self._writer})
        if self._writer_error is not None:
            error, self._writer_error = self._writer_error, None
            raise error

    async def close(self) -> None:
        """Flush pending saves and end the session."""
        if self._closed:
            return
        if self._loaded:
            await self.flush()
        self._closed = True
        self._context = None

    # ==================== Mutations ====================

    def add_to_cart(self, item: Any) -> CartState:
        """
        Add one unit of a product.

        New products are appended with quantity 1. For a product already
        in the cart the quantity goes up by one and its title, image and
        price are replaced with the ones supplied.
        """
        self._ensure_open()
        descriptor = coerce_descriptor(item)
        index = self._index_of(descriptor.id)

        if index < 0:
            products = self._products + (LineItem.from_descriptor(descriptor),)
        else:
            quantity = self._products[index].quantity + 1
            products = self._replace(index, LineItem.from_descriptor(descriptor, quantity))

        self._publish(products)
        return products

    def increment(self, product_id: str) -> CartState:
        """Raise quantity of an existing item by one."""
        self._ensure_open()
        index = self._require_index(product_id)
        item = self._products[index]

        products = self._replace(index, item.with_quantity(item.quantity + 1))
        self._publish(products)
        return products

    def decrement(self, product_id: str) -> CartState:
        """Lower quantity of an existing item by one, removing it at zero."""
        self._ensure_open()
        index = self._require_index(product_id)
        item = self._products[index]

        if item.quantity == 1:
            products = self._products[:index] + self._products[index + 1:]
        else:
            products = self._replace(index, item.with_quantity(item.quantity - 1))

        self._publish(products)
        return products

    # ==================== Internals ====================

    def _ensure_open(self) -> None:
        if self._closed:
            raise CartScopeError(ERROR_CART_CLOSED)
        if not self._loaded:
            raise CartScopeError(ERROR_CART_NOT_LOADED)

    def _index_of(self, product_id: str) -> int:
        for index, item in enumerate(self._products):
            if item.id == product_id:
                return index
        return -1

    def _require_index(self, product_id: str) -> int:
        index = self._index_of(product_id)
        if index < 0:
            logger.warning(f"Product {sanitize_id_for_logging(product_id)} is not in cart")
            raise ProductNotFoundError(product_id)
        return index

    def _replace(self, index: int, item: LineItem) -> CartState:
        return self._products[:index] + (item,) + self._products[index + 1:]

    def _publish(self, products: CartState) -> None:
        # Saves run on the event loop; fail before touching state if there is none
        loop = asyncio.get_running_loop()
        self._products = products
        self._dirty = True
        if self._writer is None or self._writer.done():
            self._writer = loop.create_task(self._drain_writes())
            self._writer.add_done_callback(self._on_writer_done)

    async def _drain_writes(self) -> None:
        while self._dirty:
            self._dirty = False
            snapshot = self._products
            try:
                await self.storage.save(snapshot)
            except PersistenceError as e:
                self.failed_writes += 1
                self.last_persistence_error = e
                logger.error(f"Failed to save cart ({len(snapshot)} item(s)): {e}")

    def _on_writer_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Cart writer stopped unexpectedly: {error!r}")
            if self._writer_error is None:
                self._writer_error = error
