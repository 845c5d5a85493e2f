"""Cart configuration from environment variables."""
import os
from dataclasses import dataclass

from gomarket.logging import get_logger

logger = get_logger(__name__)


# Upstash Redis - standard env var names per docs
UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")

DEFAULT_CART_STORAGE_KEY = "@GoMarketplace:products"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}={raw!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid number for {name}={raw!r}, using {default}")
        return default


@dataclass(frozen=True)
class CartSettings:
    """Settings for cart persistence."""
    storage_key: str = DEFAULT_CART_STORAGE_KEY
    save_attempts: int = 3
    save_backoff_max: float = 2.0

    @classmethod
    def from_env(cls) -> "CartSettings":
        """Build settings from CART_* environment variables."""
        return cls(
            storage_key=os.environ.get("CART_STORAGE_KEY") or DEFAULT_CART_STORAGE_KEY,
            save_attempts=max(1, _env_int("CART_SAVE_ATTEMPTS", 3)),
            save_backoff_max=max(0.0, _env_float("CART_SAVE_BACKOFF_MAX", 2.0)),
        )
