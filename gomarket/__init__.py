"""
GoMarketplace Core Module

This package contains the cart infrastructure components:
- cart: cart state machine, snapshot storage and access facade
- db: Upstash Redis client
- config: environment-driven settings
- errors: exception hierarchy and error messages
- logging: centralized logging configuration

Note: Imports are lazy so that importing the package does not
require Redis credentials or touch the network.
"""

__all__ = [
    "CartStore",
    "cart_session",
    "use_cart",
    "get_redis",
]


def __getattr__(name):
    """Lazy attribute access for clean module loading."""
    if name == "CartStore":
        from gomarket.cart import CartStore
        return CartStore
    elif name == "cart_session":
        from gomarket.cart import cart_session
        return cart_session
    elif name == "use_cart":
        from gomarket.cart import use_cart
        return use_cart
    elif name == "get_redis":
        from gomarket.db import get_redis
        return get_redis
    raise AttributeError(f"module 'gomarket' has no attribute '{name}'")
