"""Cart models and snapshot codec."""
from typing import Any, List, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from gomarket.errors import ERROR_SNAPSHOT_CORRUPTED

# Price is opaque to the cart: stored and echoed back, never computed on
Price = Union[int, float]


class ProductDescriptor(BaseModel):
    """Product as supplied by the catalog when adding to cart."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    image_url: str
    price: Price


class LineItem(BaseModel):
    """Single product entry in the cart plus its quantity."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    image_url: str
    price: Price
    quantity: int = Field(ge=1)

    @classmethod
    def from_descriptor(cls, descriptor: ProductDescriptor, quantity: int = 1) -> "LineItem":
        """Create a line item carrying the descriptor's fields."""
        return cls(**descriptor.model_dump(), quantity=quantity)

    def with_quantity(self, quantity: int) -> "LineItem":
        """Copy of this item with a different quantity."""
        return self.model_copy(update={"quantity": quantity})


CartState = Tuple[LineItem, ...]

_snapshot_adapter = TypeAdapter(List[LineItem])


class SnapshotDecodeError(ValueError):
    """Persisted snapshot could not be turned back into a cart."""


def encode_snapshot(products: Sequence[LineItem]) -> str:
    """Serialize the whole cart, in order, to a JSON array."""
    return _snapshot_adapter.dump_json(list(products)).decode("utf-8")


def decode_snapshot(data: Union[str, bytes]) -> CartState:
    """
    Parse a persisted snapshot.

    Raises:
        SnapshotDecodeError: invalid JSON, invalid items or duplicate ids
    """
    try:
        items = _snapshot_adapter.validate_json(data)
    except ValidationError as e:
        raise SnapshotDecodeError(f"{ERROR_SNAPSHOT_CORRUPTED}: {e.error_count()} error(s)") from e

    seen = set()
    for item in items:
        if item.id in seen:
            raise SnapshotDecodeError(f"{ERROR_SNAPSHOT_CORRUPTED}: duplicate id {item.id!r}")
        seen.add(item.id)

    return tuple(items)


def coerce_descriptor(item: Any) -> ProductDescriptor:
    """Accept a ProductDescriptor, a LineItem or a plain mapping."""
    if isinstance(item, ProductDescriptor):
        return item
    if isinstance(item, LineItem):
        return ProductDescriptor.model_validate(item.model_dump(exclude={"quantity"}))
    return ProductDescriptor.model_validate(item)
