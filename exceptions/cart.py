"""
Cart-related exceptions.

All of them except the API errors wrapped by the synchronizer are raised
before any network call is made.
"""

from .base import MarketplaceException


class CartException(MarketplaceException):
    """Base exception for cart-related errors."""
    pass


class CartNotLoadedException(CartException):
    """Raised when a mutation needs the mirror but no cart has been fetched."""

    def __init__(self, operation: str):
        super().__init__(
            f"Cart is not loaded, cannot {operation}",
            details={'operation': operation}
        )
        self.operation = operation


class CartItemNotFoundException(CartException):
    """Raised when cart item is not present in the mirror."""

    def __init__(self, cart_item_id: str):
        super().__init__(
            f"Cart item {cart_item_id} not found",
            details={'cart_item_id': cart_item_id}
        )
        self.cart_item_id = cart_item_id


class InvalidQuantityException(CartException):
    """Raised when a requested quantity is below 1."""

    def __init__(self, cart_item_id: str | None, quantity: int):
        super().__init__(
            f"Invalid quantity {quantity} for cart item {cart_item_id}: must be at least 1",
            details={'cart_item_id': cart_item_id, 'quantity': quantity}
        )
        self.cart_item_id = cart_item_id
        self.quantity = quantity


class StockLimitExceededException(CartException):
    """Raised when a requested quantity exceeds the product's remaining stock."""

    def __init__(self, cart_item_id: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for cart item {cart_item_id}: requested {requested}, available {available}",
            details={'cart_item_id': cart_item_id, 'requested': requested, 'available': available}
        )
        self.cart_item_id = cart_item_id
        self.requested = requested
        self.available = available


class MutationInProgressException(CartException):
    """Raised when a mutation with the same key is still awaiting its response."""

    retryable = True

    def __init__(self, mutation_key: str):
        super().__init__(
            f"A cart mutation for {mutation_key} is already in progress",
            details={'mutation_key': mutation_key}
        )
        self.mutation_key = mutation_key
