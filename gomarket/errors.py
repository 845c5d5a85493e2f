"""
Cart Errors

Exception hierarchy for the cart plus centralized error messages
to avoid string duplication.
"""

# Scope errors
ERROR_CART_SCOPE = "use_cart must be used within an open cart session"
ERROR_CART_NOT_LOADED = "Cart has not been loaded yet"
ERROR_CART_CLOSED = "Cart session is closed"

# Product errors
ERROR_PRODUCT_NOT_IN_CART = "Product not found in cart"

# Persistence errors
ERROR_STORAGE_READ = "Failed to read cart snapshot"
ERROR_STORAGE_WRITE = "Failed to write cart snapshot"
ERROR_SNAPSHOT_CORRUPTED = "Cart snapshot is corrupted"


class CartError(Exception):
    """Base class for all cart errors."""


class CartScopeError(CartError):
    """The cart facade was used outside of an open, loaded cart store."""

    def __init__(self, message: str = ERROR_CART_SCOPE):
        super().__init__(message)


class ProductNotFoundError(CartError):
    """increment/decrement called with an id that is not in the cart."""

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"{ERROR_PRODUCT_NOT_IN_CART}: {product_id!r}")


class PersistenceError(CartError):
    """Reading from or writing to the key-value backend failed."""

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(message)
