from commerce_api.client import CommerceApiClient, parse_response
from models.cart import CartDTO
from models.cartItem import CartItemDTO


class CartRepository:
    """Remote cart endpoints. The commerce service is the only authority for cart and item ids."""

    @staticmethod
    async def get(token: str, api: CommerceApiClient) -> CartDTO:
        data = await api.get("/cart", token)
        return parse_response(CartDTO, data, "GET", "/cart")

    @staticmethod
    async def add_item(product_id: str, quantity: int, token: str, api: CommerceApiClient) -> CartItemDTO:
        data = await api.post("/cart/items", token, {"productId": product_id, "quantity": quantity})
        return parse_response(CartItemDTO, data, "POST", "/cart/items")

    @staticmethod
    async def update_item(cart_item_id: str, quantity: int, token: str, api: CommerceApiClient) -> CartItemDTO:
        path = f"/cart/items/{cart_item_id}"
        data = await api.put(path, token, {"quantity": quantity})
        return parse_response(CartItemDTO, data, "PUT", path)

    @staticmethod
    async def remove_item(cart_item_id: str, token: str, api: CommerceApiClient) -> str | None:
        data = await api.delete(f"/cart/items/{cart_item_id}", token)
        if isinstance(data, dict):
            return data.get("message")
        return None
