from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class ProductRefDTO(BaseModel):
    """Product snapshot embedded in a cart item at fetch time."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str | None = None
    price: float = 0.0
    quantity: int = 0  # Remaining stock when the cart was fetched
    images: list[str] = []
    is_available: bool = True


class CartItemDTO(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    quantity: int
    product_id: str | None = None
    product: ProductRefDTO | None = None

    @model_validator(mode="after")
    def _fill_product_id(self) -> "CartItemDTO":
        if self.product_id is None and self.product is not None:
            self.product_id = self.product.id
        return self

    @property
    def unit_price(self) -> float:
        return self.product.price if self.product else 0.0

    @property
    def available_quantity(self) -> int | None:
        """Stock bound captured at fetch time, None when the server sent no product."""
        return self.product.quantity if self.product else None
