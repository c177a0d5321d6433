"""
Unit Tests: CommerceApiClient

Runs the client against a local aiohttp test server to verify bearer
authorization, status code translation and transport error handling.
"""

import asyncio

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from commerce_api.client import CommerceApiClient, parse_response
from exceptions.api import AuthorizationException, RemoteServiceException, NetworkException, InvalidResponseException
from models.cart import CartDTO


async def cart_handler(request: web.Request) -> web.Response:
    request.app["seen_auth"].append(request.headers.get("Authorization"))
    return web.json_response({"id": "cart-1", "userId": "alice", "items": []})


async def add_item_handler(request: web.Request) -> web.Response:
    body = await request.json()
    if body.get("quantity", 0) > 5:
        return web.json_response({"error": "Insufficient stock"}, status=400)
    return web.json_response({"id": "item-1", "quantity": body["quantity"], "productId": body["productId"]}, status=201)


async def delete_item_handler(request: web.Request) -> web.Response:
    return web.Response(status=204)


async def profile_handler(request: web.Request) -> web.Response:
    return web.json_response({"error": "Invalid token"}, status=401)


async def seller_handler(request: web.Request) -> web.Response:
    return web.Response(status=500, text="Internal Server Error")


async def maintenance_handler(request: web.Request) -> web.Response:
    return web.Response(status=200, text="<html>Down for maintenance</html>", content_type="text/html")


async def slow_handler(request: web.Request) -> web.Response:
    await asyncio.sleep(1)
    return web.json_response({})


@pytest_asyncio.fixture
async def server():
    app = web.Application()
    app["seen_auth"] = []
    app.router.add_get("/api/cart", cart_handler)
    app.router.add_post("/api/cart/items", add_item_handler)
    app.router.add_delete("/api/cart/items/{item_id}", delete_item_handler)
    app.router.add_get("/api/user/profile", profile_handler)
    app.router.add_get("/api/seller/profile-complete", seller_handler)
    app.router.add_get("/api/slow", slow_handler)
    app.router.add_get("/api/maintenance", maintenance_handler)

    test_server = TestServer(app)
    await test_server.start_server()
    yield test_server
    await test_server.close()


@pytest_asyncio.fixture
async def client(server):
    api = CommerceApiClient(base_url=f"http://{server.host}:{server.port}/api/", timeout=0.3)
    yield api
    await api.close()


class TestRequest:
    """Test CommerceApiClient.request()"""

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self, client, server):
        data = await client.get("/cart", "token-alice")

        assert data["id"] == "cart-1"
        assert server.app["seen_auth"] == ["Bearer token-alice"]

    @pytest.mark.asyncio
    async def test_posts_json_payload(self, client):
        data = await client.post("/cart/items", "token-alice", {"productId": "poster", "quantity": 2})

        assert data == {"id": "item-1", "quantity": 2, "productId": "poster"}

    @pytest.mark.asyncio
    async def test_empty_response_returns_none(self, client):
        assert await client.delete("/cart/items/item-1", "token-alice") is None

    @pytest.mark.asyncio
    async def test_missing_token_never_sent(self, client, server):
        with pytest.raises(AuthorizationException):
            await client.get("/cart", None)

        assert server.app["seen_auth"] == []

    @pytest.mark.asyncio
    async def test_unauthorized_status(self, client):
        with pytest.raises(AuthorizationException) as exc_info:
            await client.get("/user/profile", "expired")

        assert exc_info.value.status == 401

    @pytest.mark.asyncio
    async def test_error_status_carries_server_message(self, client):
        with pytest.raises(RemoteServiceException) as exc_info:
            await client.post("/cart/items", "token-alice", {"productId": "poster", "quantity": 9})

        assert exc_info.value.status == 400
        assert exc_info.value.server_message == "Insufficient stock"

    @pytest.mark.asyncio
    async def test_error_status_without_json_body(self, client):
        with pytest.raises(RemoteServiceException) as exc_info:
            await client.get("/seller/profile-complete", "token-alice")

        assert exc_info.value.status == 500
        assert exc_info.value.server_message is None

    @pytest.mark.asyncio
    async def test_timeout_is_network_error(self, client):
        with pytest.raises(NetworkException):
            await client.get("/slow", "token-alice")

    @pytest.mark.asyncio
    async def test_connection_refused_is_network_error(self):
        async with CommerceApiClient(base_url="http://127.0.0.1:1/api", timeout=1) as api:
            with pytest.raises(NetworkException) as exc_info:
                await api.get("/cart", "token-alice")

        assert exc_info.value.method == "GET"
        assert exc_info.value.path == "/cart"

    @pytest.mark.asyncio
    async def test_non_json_success_body_is_api_error(self, client):
        with pytest.raises(InvalidResponseException) as exc_info:
            await client.get("/maintenance", "token-alice")

        assert exc_info.value.method == "GET"
        assert exc_info.value.path == "/maintenance"
        assert exc_info.value.retryable is False


class TestParseResponse:
    """Test parse_response()"""

    def test_valid_payload(self):
        cart = parse_response(CartDTO, {"id": "cart-1", "items": []}, "GET", "/cart")

        assert cart.id == "cart-1"

    def test_payload_not_matching_dto(self):
        with pytest.raises(InvalidResponseException) as exc_info:
            parse_response(CartDTO, {"items": "oops"}, "GET", "/cart")

        assert "CartDTO" in exc_info.value.reason
        assert exc_info.value.details["path"] == "/cart"
