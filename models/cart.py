# The cart is owned by the commerce service. The client only keeps a mirror of
# the last fetched state; item ids and ordering are assigned by the server, so
# the mirror is replaced wholesale on every fetch and never patched locally.
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from models.cartItem import CartItemDTO


class CartDTO(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    user_id: str | None = None
    items: list[CartItemDTO] = []


class CartSummaryDTO(BaseModel):
    """Totals shown on the cart page."""
    item_count: int
    subtotal: float
    tax: float
    total: float
