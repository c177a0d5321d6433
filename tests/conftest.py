"""
Pytest configuration and fixtures for tests.

This file is automatically loaded by pytest and provides shared fixtures
and configuration for all tests.
"""

import asyncio
import os
import sys
from collections import defaultdict
from contextlib import asynccontextmanager

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Add parent directory to Python path so tests can import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Minimal configuration required by config.py, set before any project import
os.environ.setdefault("RUNTIME_ENVIRONMENT", "TEST")
os.environ.setdefault("API_BASE_URL", "http://commerce.test/api")
os.environ.setdefault("COMPLETION_FALLBACK_TTL_SECONDS", "0")

from models.base import Base
from models.local_setting import LocalSetting  # noqa: F401  (registers the table)
from models.session import IdentityDTO
from services.identity_provider import IdentityProvider


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def test_engine():
    """Create test database engine (in-memory SQLite shared by all sessions)."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Drop-in replacement for db.get_db_session bound to the test engine."""
    maker = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    @asynccontextmanager
    async def factory():
        async with maker() as session:
            yield session

    return factory


# ============================================================================
# Identity Provider Fixtures
# ============================================================================

class FakeIdentityProvider(IdentityProvider):
    """Issues "token-<uid>" tokens and records sign-outs."""

    def __init__(self):
        self.sign_out_calls = 0
        self.fail_sign_out: Exception | None = None
        self.fail_token: Exception | None = None

    async def get_id_token(self, identity: IdentityDTO) -> str:
        if self.fail_token is not None:
            raise self.fail_token
        return f"token-{identity.uid}"

    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        if self.fail_sign_out is not None:
            raise self.fail_sign_out


@pytest.fixture
def provider():
    return FakeIdentityProvider()


@pytest.fixture
def alice():
    return IdentityDTO(uid="alice", name="Alice", email="alice@example.com")


@pytest.fixture
def bob():
    return IdentityDTO(uid="bob", name="Bob", email="bob@example.com")


# ============================================================================
# Commerce API Fixtures
# ============================================================================

class FakeCommerceApi:
    """
    In-memory stand-in for CommerceApiClient.

    Users are derived from the "token-<uid>" bearer token. Requests can be
    held open with hold() and failed with fail() to exercise concurrency and
    error paths; calls and peak concurrency are recorded per (method, path).
    """

    def __init__(self):
        self.calls: list[tuple[str, str, str | None, dict | None]] = []
        self.profiles: dict[str, bool] = {}
        self.seller_profiles: dict[str, bool] = {}
        self.products: dict[str, dict] = {}
        self.carts: dict[str, list[dict]] = defaultdict(list)
        self._failures: dict[tuple[str, str], Exception] = {}
        self._bodies: dict[tuple[str, str], object] = {}
        self._holds: dict[tuple[str, str], asyncio.Event] = {}
        self._active: dict[tuple[str, str], int] = defaultdict(int)
        self.max_active: dict[tuple[str, str], int] = defaultdict(int)
        self._next_item_id = 1

    def add_product(self, product_id: str, price: float, quantity: int, name: str | None = None) -> None:
        self.products[product_id] = {
            "id": product_id,
            "name": name or product_id,
            "price": price,
            "quantity": quantity,
            "images": [],
            "isAvailable": True,
        }

    def put_in_cart(self, uid: str, product_id: str, quantity: int) -> str:
        item_id = f"item-{self._next_item_id}"
        self._next_item_id += 1
        self.carts[uid].append({"id": item_id, "productId": product_id, "quantity": quantity})
        return item_id

    def fail(self, method: str, path: str, exc: Exception) -> None:
        self._failures[(method, path)] = exc

    def respond_with(self, method: str, path: str, body) -> None:
        """Answer (method, path) with a fixed body after applying the request."""
        self._bodies[(method, path)] = body

    def recover(self, method: str, path: str) -> None:
        self._failures.pop((method, path), None)
        self._bodies.pop((method, path), None)

    def hold(self, method: str, path: str) -> asyncio.Event:
        event = asyncio.Event()
        self._holds[(method, path)] = event
        return event

    def count(self, method: str, path: str) -> int:
        return sum(1 for call in self.calls if call[0] == method and call[1] == path)

    async def request(self, method: str, path: str, token: str | None, payload: dict | None = None):
        key = (method, path)
        self.calls.append((method, path, token, payload))
        self._active[key] += 1
        self.max_active[key] = max(self.max_active[key], self._active[key])
        try:
            if key in self._holds:
                await self._holds[key].wait()
            if key in self._failures:
                raise self._failures[key]
            uid = (token or "").removeprefix("token-")
            result = self._handle(method, path, uid, payload)
            return self._bodies.get(key, result)
        finally:
            self._active[key] -= 1

    def _item_json(self, item: dict) -> dict:
        return {
            "id": item["id"],
            "quantity": item["quantity"],
            "productId": item["productId"],
            "product": dict(self.products[item["productId"]]),
        }

    def _handle(self, method: str, path: str, uid: str, payload: dict | None):
        if (method, path) == ("GET", "/user/profile"):
            return {"id": uid, "email": f"{uid}@example.com", "profileCompleted": self.profiles.get(uid, False)}
        if (method, path) == ("GET", "/seller/profile-complete"):
            return {"isComplete": self.seller_profiles.get(uid, False)}
        if (method, path) == ("GET", "/cart"):
            return {"id": f"cart-{uid}", "userId": uid, "items": [self._item_json(i) for i in self.carts[uid]]}
        if (method, path) == ("POST", "/cart/items"):
            existing = next((i for i in self.carts[uid] if i["productId"] == payload["productId"]), None)
            if existing is not None:
                existing["quantity"] += payload["quantity"]
                return self._item_json(existing)
            item_id = self.put_in_cart(uid, payload["productId"], payload["quantity"])
            return self._item_json(self.carts[uid][-1]) | {"id": item_id}
        if path.startswith("/cart/items/"):
            item_id = path.rsplit("/", 1)[1]
            item = next(i for i in self.carts[uid] if i["id"] == item_id)
            if method == "PUT":
                item["quantity"] = payload["quantity"]
                return self._item_json(item)
            if method == "DELETE":
                self.carts[uid].remove(item)
                return {"message": "Item removed from cart"}
        raise AssertionError(f"Unexpected request {method} {path}")

    async def get(self, path, token):
        return await self.request("GET", path, token)

    async def post(self, path, token, payload):
        return await self.request("POST", path, token, payload)

    async def put(self, path, token, payload):
        return await self.request("PUT", path, token, payload)

    async def delete(self, path, token):
        return await self.request("DELETE", path, token)

    async def close(self):
        pass


@pytest.fixture
def fake_api():
    return FakeCommerceApi()
