"""
Cart synchronizer: a read-through mirror of the server-owned cart.

The commerce service assigns cart item ids and ordering, so the mirror is
never patched locally. Every accepted mutation marks the mirror dirty and
triggers a full refetch; reads during that window return the last fetched
value.

Concurrency rules:
- One outstanding mutation per key (cart item id, or "add:<product_id>").
  A duplicate is rejected before any network call. An add for a product
  that already has a row also reserves that row's id.
- Mutations on different keys run concurrently.
- A result is only applied if the identity that issued the request is still
  active; responses arriving after sign-out are ignored.
- A fetch only replaces the mirror if no later-started fetch has already
  been applied.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, TypeVar

import config
from commerce_api.client import CommerceApiClient
from enums.session_state import SessionState
from exceptions.base import MarketplaceException
from exceptions.cart import (
    CartNotLoadedException,
    CartItemNotFoundException,
    InvalidQuantityException,
    StockLimitExceededException,
    MutationInProgressException,
)
from exceptions.session import NotAuthenticatedException
from models.cart import CartDTO, CartSummaryDTO
from models.cartItem import CartItemDTO
from models.session import IdentityDTO, SessionSnapshotDTO
from repositories.cart import CartRepository
from services.session_gate import SessionGate

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (gate generation, local epoch, identity uid)
Ticket = tuple[int, int, str]


class CartSynchronizer:

    def __init__(
        self,
        gate: SessionGate,
        api: CommerceApiClient,
        stale_seconds: int | None = None,
        discard_seconds: int | None = None,
        tax_rate: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._gate = gate
        self._api = api
        self._stale_seconds = stale_seconds if stale_seconds is not None else config.CART_STALE_SECONDS
        self._discard_seconds = discard_seconds if discard_seconds is not None else config.CART_DISCARD_SECONDS
        self._tax_rate = tax_rate if tax_rate is not None else config.CART_TAX_RATE
        self._clock = clock

        self._mirror: CartDTO | None = None
        self._mirror_owner: str | None = None
        self._fetched_at: float | None = None
        self._dirty = False

        self._epoch = 0
        self._in_flight: set[str] = set()
        self._auto_loads: dict[str, asyncio.Task] = {}
        self._fetch_seq = 0
        self._applied_fetch_seq = 0
        self._mutation_seq = 0

    def attach(self) -> Callable[[], None]:
        """
        Follow the session gate: load when an identity is resolved, discard on sign-out.

        The load runs as a background task so the gate's resolve() returns as
        soon as both completeness checks settled.

        Returns:
            Callable that detaches the synchronizer
        """
        return self._gate.subscribe(self._on_session_changed)

    async def _on_session_changed(self, snapshot: SessionSnapshotDTO) -> None:
        if snapshot.identity is None:
            self.discard()
            return
        uid = snapshot.identity.uid
        if self._mirror_owner is not None and self._mirror_owner != uid:
            self.discard()
        if snapshot.state == SessionState.RESOLVED and self._mirror_owner != uid and uid not in self._auto_loads:
            self._schedule_load(uid)

    def _schedule_load(self, uid: str) -> None:
        task = asyncio.ensure_future(self._auto_load(uid))
        self._auto_loads[uid] = task

        def forget(done: asyncio.Task) -> None:
            if self._auto_loads.get(uid) is done:
                del self._auto_loads[uid]

        task.add_done_callback(forget)

    async def _auto_load(self, uid: str) -> None:
        try:
            await self.load()
        except MarketplaceException as e:
            logger.warning(f"[CartSync] Initial cart load failed for {uid}: {e}")

    async def wait_for_pending_loads(self) -> None:
        """Wait until every load scheduled by the gate subscription has finished."""
        while True:
            pending = [task for task in self._auto_loads.values() if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        """Cancel loads scheduled by the gate subscription."""
        tasks = list(self._auto_loads.values())
        self._auto_loads.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Reads (never mutate state)
    # ------------------------------------------------------------------

    def _current_mirror(self) -> CartDTO | None:
        identity = self._gate.active_identity
        if self._mirror is None or identity is None or identity.uid != self._mirror_owner:
            return None
        if self._fetched_at is not None and self._clock() - self._fetched_at > self._discard_seconds:
            return None
        return self._mirror

    @property
    def cart(self) -> CartDTO | None:
        return self._current_mirror()

    @property
    def is_loaded(self) -> bool:
        return self._current_mirror() is not None

    @property
    def is_dirty(self) -> bool:
        """True between an accepted mutation and the refetch that reflects it."""
        return self._dirty

    @property
    def is_stale(self) -> bool:
        if self._current_mirror() is None or self._fetched_at is None:
            return True
        return self._clock() - self._fetched_at > self._stale_seconds

    @property
    def total_item_count(self) -> int:
        cart = self._current_mirror()
        if cart is None:
            return 0
        return sum(item.quantity for item in cart.items)

    def is_in_cart(self, product_id: str) -> bool:
        cart = self._current_mirror()
        if cart is None:
            return False
        return any(item.product_id == product_id for item in cart.items)

    def get_item(self, cart_item_id: str) -> CartItemDTO | None:
        cart = self._current_mirror()
        if cart is None:
            return None
        return next((item for item in cart.items if item.id == cart_item_id), None)

    def summary(self) -> CartSummaryDTO:
        """
        Cart page totals from the mirror.

        Subtotal uses the unit price captured at fetch time; tax is
        CART_TAX_RATE of the subtotal.
        """
        cart = self._current_mirror()
        items = cart.items if cart else []
        subtotal = sum(item.unit_price * item.quantity for item in items)
        tax = subtotal * self._tax_rate
        return CartSummaryDTO(
            item_count=sum(item.quantity for item in items),
            subtotal=round(subtotal, 2),
            tax=round(tax, 2),
            total=round(subtotal + tax, 2),
        )

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def _ticket(self, identity: IdentityDTO) -> Ticket:
        return self._gate.generation, self._epoch, identity.uid

    def _is_current(self, ticket: Ticket) -> bool:
        identity = self._gate.active_identity
        return identity is not None and ticket == self._ticket(identity)

    async def load(self, identity: IdentityDTO | None = None) -> CartDTO | None:
        """
        Fetch the authoritative cart and replace the mirror.

        No-op for an anonymous caller, or when identity is given but is not
        the gate's resolved identity.

        Returns:
            The fetched cart, or None if nothing was loaded
        """
        active = self._gate.active_identity
        if active is None or (identity is not None and identity.uid != active.uid):
            return None
        return await self._fetch(self._ticket(active))

    async def refresh_if_stale(self) -> CartDTO | None:
        if not self.is_stale:
            return self._current_mirror()
        return await self.load()

    async def _fetch(self, ticket: Ticket) -> CartDTO | None:
        self._fetch_seq += 1
        fetch_seq = self._fetch_seq
        mutation_seq = self._mutation_seq

        token = await self._gate.get_token()
        cart = await CartRepository.get(token, self._api)

        if not self._is_current(ticket):
            logger.info(f"[CartSync] Discarding cart fetch for {ticket[2]}: identity no longer active")
            return None
        if fetch_seq < self._applied_fetch_seq:
            logger.debug(f"[CartSync] Skipping fetch #{fetch_seq}, #{self._applied_fetch_seq} already applied")
            return self._mirror

        self._mirror = cart
        self._mirror_owner = ticket[2]
        self._fetched_at = self._clock()
        self._applied_fetch_seq = fetch_seq
        if mutation_seq == self._mutation_seq:
            self._dirty = False
        return cart

    def discard(self) -> None:
        """Drop the mirror, cancel scheduled loads and forget in-flight mutations; their responses will be ignored."""
        self._epoch += 1
        self._mirror = None
        self._mirror_owner = None
        self._fetched_at = None
        self._dirty = False
        self._in_flight.clear()
        for task in self._auto_loads.values():
            task.cancel()
        self._auto_loads.clear()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _require_item(self, cart_item_id: str, operation: str) -> CartItemDTO:
        if self._current_mirror() is None:
            raise CartNotLoadedException(operation)
        item = self.get_item(cart_item_id)
        if item is None:
            raise CartItemNotFoundException(cart_item_id)
        return item

    async def _mutate(
        self,
        keys: tuple[str, ...],
        operation: str,
        call: Callable[[str], Awaitable[T]],
    ) -> T | None:
        """
        Run one remote mutation followed by invalidate-and-refetch.

        Every key stays reserved until the refetch finished, so a follow-up
        mutation on any of them always validates against the new mirror.

        Returns:
            The server response, or None if the issuing identity is gone
        """
        identity = self._gate.active_identity
        if identity is None:
            raise NotAuthenticatedException(operation)
        busy = next((key for key in keys if key in self._in_flight), None)
        if busy is not None:
            raise MutationInProgressException(busy)

        ticket = self._ticket(identity)
        epoch = self._epoch
        label = keys[0]
        self._in_flight.update(keys)
        try:
            try:
                token = await self._gate.get_token()
                result = await call(token)
            except MarketplaceException as e:
                logger.warning(f"[CartSync] {operation} failed for {label} (retryable={e.retryable}): {e}")
                raise

            if not self._is_current(ticket):
                logger.info(f"[CartSync] Ignoring {operation} response for {ticket[2]}: identity no longer active")
                return None

            self._dirty = True
            self._mutation_seq += 1
            try:
                await self._fetch(ticket)
            except MarketplaceException as e:
                logger.warning(f"[CartSync] Refetch after {operation} failed, mirror stays dirty: {e}")
            return result
        finally:
            if epoch == self._epoch:
                self._in_flight.difference_update(keys)

    async def add(self, product_id: str, quantity: int = 1) -> CartItemDTO | None:
        """
        Add a product to the cart.

        The server merges an add into an existing row for the same product,
        so that row is reserved too while the add is outstanding.
        """
        if quantity < 1:
            raise InvalidQuantityException(None, quantity)
        keys = (f"add:{product_id}",)
        cart = self._current_mirror()
        if cart is not None:
            keys += tuple(item.id for item in cart.items if item.product_id == product_id)
        return await self._mutate(
            keys,
            "add to cart",
            lambda token: CartRepository.add_item(product_id, quantity, token, self._api),
        )

    async def update_quantity(self, cart_item_id: str, quantity: int) -> CartItemDTO | None:
        """
        Set an item's quantity.

        Requests outside 1..stock are rejected before any network call; the
        stock bound is the product quantity captured when the mirror was
        fetched. Quantities are never clamped.

        Raises:
            CartNotLoadedException, CartItemNotFoundException,
            InvalidQuantityException, StockLimitExceededException,
            MutationInProgressException, ApiException
        """
        item = self._require_item(cart_item_id, "update quantity")
        if quantity < 1:
            raise InvalidQuantityException(cart_item_id, quantity)
        available = item.available_quantity
        if available is None:
            logger.warning(
                f"[CartSync] Cart item {cart_item_id} has no product snapshot, "
                f"stock bound unknown, leaving it to the server"
            )
        elif quantity > available:
            raise StockLimitExceededException(cart_item_id, quantity, available)
        return await self._mutate(
            (cart_item_id,),
            "update quantity",
            lambda token: CartRepository.update_item(cart_item_id, quantity, token, self._api),
        )

    async def remove(self, cart_item_id: str) -> str | None:
        return await self._mutate(
            (cart_item_id,),
            "remove from cart",
            lambda token: CartRepository.remove_item(cart_item_id, token, self._api),
        )

    async def increment(self, cart_item_id: str) -> CartItemDTO | None:
        item = self._require_item(cart_item_id, "increment quantity")
        return await self.update_quantity(cart_item_id, item.quantity + 1)

    async def decrement(self, cart_item_id: str) -> CartItemDTO | str | None:
        """
        Lower the quantity by one; the last unit removes the row instead of leaving quantity 0.

        Returns:
            The updated item, or the server's removal message for the last unit
        """
        item = self._require_item(cart_item_id, "decrement quantity")
        if item.quantity <= 1:
            return await self.remove(cart_item_id)
        return await self.update_quantity(cart_item_id, item.quantity - 1)
