"""
Session gate: who is acting and what they are allowed to reach.

The gate owns the identity reported by the identity provider and two derived
completeness flags (buyer profile, seller profile). Every identity change
re-derives both flags from the commerce service. When a check fails, the last
persisted marker for that flag is used instead (degraded mode), so a failing
check never blocks sign-in.

State machine:
    UNKNOWN   -> ANONYMOUS  (provider reports no identity)
    UNKNOWN   -> RESOLVING  (provider reports an identity)
    RESOLVING -> RESOLVED   (both checks settled)
    any       -> ANONYMOUS  (sign-out or provider-side invalidation)

Guards never expose a RESOLVING identity: they answer PENDING so the UI can
wait instead of redirecting prematurely.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable

from sqlalchemy.exc import SQLAlchemyError

import config
from commerce_api.client import CommerceApiClient
from db import get_db_session, session_commit
from enums.completion_source import CompletionSource
from enums.guard_outcome import GuardOutcome
from enums.session_state import SessionState
from exceptions.session import NotAuthenticatedException
from models.session import (
    IdentityDTO,
    ProfileCompletionDTO,
    SessionSnapshotDTO,
    RedirectDTO,
    GuardResultDTO,
)
from repositories.local_setting import LocalSettingRepository
from repositories.seller import SellerRepository
from repositories.user import UserRepository
from services.identity_provider import IdentityProvider

logger = logging.getLogger(__name__)

PROFILE_COMPLETE_KEY = "profile_complete"
SELLER_PROFILE_COMPLETE_KEY = "seller_profile_complete"
# Identity the persisted markers belong to; markers of another identity are never read
COMPLETION_OWNER_KEY = "profile_completion_owner"

SessionListener = Callable[[SessionSnapshotDTO], Awaitable[None] | None]
Navigator = Callable[[RedirectDTO], None]


class SessionGate:

    def __init__(
        self,
        provider: IdentityProvider,
        api: CommerceApiClient,
        session_factory=get_db_session,
        navigator: Navigator | None = None,
        fallback_ttl_seconds: int | None = None,
    ):
        self._provider = provider
        self._api = api
        self._session_factory = session_factory
        self._navigator = navigator
        self._fallback_ttl_seconds = (
            fallback_ttl_seconds if fallback_ttl_seconds is not None else config.COMPLETION_FALLBACK_TTL_SECONDS
        )

        self._state = SessionState.UNKNOWN
        self._identity: IdentityDTO | None = None
        self._completion = ProfileCompletionDTO()
        self._generation = 0
        self._resolve_task: asyncio.Task | None = None
        self._return_path: str | None = None
        self._listeners: list[SessionListener] = []
        self._store_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> IdentityDTO | None:
        return self._identity

    @property
    def active_identity(self) -> IdentityDTO | None:
        """The identity, but only once it is RESOLVED."""
        return self._identity if self._state == SessionState.RESOLVED else None

    @property
    def completion(self) -> ProfileCompletionDTO:
        return self._completion

    @property
    def generation(self) -> int:
        """Incremented on every identity change; results tagged with an older value are stale."""
        return self._generation

    @property
    def is_resolving(self) -> bool:
        return self._state in (SessionState.UNKNOWN, SessionState.RESOLVING)

    @property
    def return_path(self) -> str | None:
        return self._return_path

    def consume_return_path(self) -> str | None:
        path, self._return_path = self._return_path, None
        return path

    def snapshot(self) -> SessionSnapshotDTO:
        return SessionSnapshotDTO(state=self._state, identity=self._identity, completion=self._completion)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a state-change listener.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def get_token(self) -> str:
        identity = self.active_identity
        if identity is None:
            raise NotAuthenticatedException("get_token")
        return await self._provider.get_id_token(identity)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def on_identity_changed(self, identity: IdentityDTO | None) -> None:
        """Provider callback; None means signed out or invalidated by the provider."""
        if identity is None:
            await self._reset()
        else:
            await self.resolve(identity)

    async def resolve(self, identity: IdentityDTO, force: bool = False) -> ProfileCompletionDTO:
        """
        Derive both completeness flags for an identity.

        Safe to call repeatedly: a call for the identity that is already being
        resolved joins the running resolution, and a call for an already
        RESOLVED identity returns the current flags unless force=True.

        Args:
            identity: Identity reported by the provider
            force: Re-run both checks even if already resolved

        Returns:
            ProfileCompletionDTO (default flags if the identity was replaced meanwhile)
        """
        same_identity = self._identity is not None and self._identity.uid == identity.uid
        if same_identity and self._resolve_task is not None and not self._resolve_task.done():
            return await asyncio.shield(self._resolve_task)
        if same_identity and self._state == SessionState.RESOLVED and not force:
            return self._completion

        self._generation += 1
        generation = self._generation
        self._identity = identity
        self._completion = ProfileCompletionDTO()
        await self._set_state(SessionState.RESOLVING)

        self._resolve_task = asyncio.ensure_future(self._run_checks(identity, generation))
        return await asyncio.shield(self._resolve_task)

    async def revalidate(self) -> ProfileCompletionDTO:
        """
        Re-run only the checks that are currently served from a fallback marker.

        A check that succeeds replaces both the flag and its marker; one that
        fails again keeps the degraded value.
        """
        identity = self.active_identity
        if identity is None or not self._completion.degraded:
            return self._completion

        generation = self._generation
        current = self._completion
        buyer = (current.buyer_complete, current.buyer_source)
        seller = (current.seller_complete, current.seller_source)

        checks = []
        if current.buyer_source == CompletionSource.FALLBACK:
            checks.append(("buyer", self._check_buyer_profile(identity, generation)))
        if current.seller_source == CompletionSource.FALLBACK:
            checks.append(("seller", self._check_seller_profile(identity, generation)))

        results = await asyncio.gather(*(check for _, check in checks))
        if generation != self._generation:
            logger.info(f"[SessionGate] Discarding revalidation for {identity.uid}: identity changed")
            return self._completion

        for (name, _), result in zip(checks, results):
            if name == "buyer":
                buyer = result
            else:
                seller = result

        self._completion = ProfileCompletionDTO(
            buyer_complete=buyer[0],
            seller_complete=seller[0],
            buyer_source=buyer[1],
            seller_source=seller[1],
        )
        await self._notify()
        return self._completion

    async def sign_out(self) -> None:
        """
        Sign out with the provider and clear identity, flags and persisted markers.

        Idempotent. Provider errors are logged and re-raised; local state is
        only cleared once the provider confirmed the sign-out.
        """
        try:
            await self._provider.sign_out()
        except Exception as e:
            logger.error(f"[SessionGate] Error signing out: {e}")
            raise
        await self._reset()

    async def teardown(self) -> None:
        """End the gate's lifecycle without contacting the provider."""
        await self._reset()

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def require_auth(self, target_path: str) -> GuardResultDTO:
        if self.is_resolving:
            return GuardResultDTO(outcome=GuardOutcome.PENDING)
        if self._identity is None:
            return self._redirect_to_signin(target_path)
        return GuardResultDTO(outcome=GuardOutcome.ALLOWED)

    def require_buyer_profile(self, target_path: str) -> GuardResultDTO:
        """
        Gate a view on a completed buyer profile.

        Returns:
            ALLOWED, PENDING while resolving, or REDIRECT to sign-in /
            profile completion carrying target_path as return path
        """
        result = self.require_auth(target_path)
        if not result.allowed:
            return result
        if not self._completion.buyer_complete:
            return self._redirect(config.COMPLETE_PROFILE_PATH, target_path)
        return result

    def require_seller_profile(self, target_path: str) -> GuardResultDTO:
        """
        Gate a view on a completed seller profile.

        Returns:
            ALLOWED, PENDING while resolving, or REDIRECT to sign-in /
            seller profile completion carrying target_path as return path
        """
        result = self.require_auth(target_path)
        if not result.allowed:
            return result
        if not self._completion.seller_complete:
            return self._redirect(config.COMPLETE_SELLER_PROFILE_PATH, target_path)
        return result

    def _redirect_to_signin(self, target_path: str) -> GuardResultDTO:
        self._return_path = target_path
        return self._redirect(config.SIGNIN_PATH, target_path)

    def _redirect(self, path: str, return_path: str) -> GuardResultDTO:
        redirect = RedirectDTO(path=path, return_path=return_path)
        logger.debug(f"[SessionGate] Redirect {return_path} -> {path}")
        if self._navigator is not None:
            self._navigator(redirect)
        return GuardResultDTO(outcome=GuardOutcome.REDIRECT, redirect=redirect)

    # ------------------------------------------------------------------
    # Completeness checks
    # ------------------------------------------------------------------

    async def _run_checks(self, identity: IdentityDTO, generation: int) -> ProfileCompletionDTO:
        await self._claim_markers(identity, generation)
        if generation != self._generation:
            return ProfileCompletionDTO()

        (buyer_complete, buyer_source), (seller_complete, seller_source) = await asyncio.gather(
            self._check_buyer_profile(identity, generation),
            self._check_seller_profile(identity, generation),
        )

        if generation != self._generation:
            logger.info(f"[SessionGate] Discarding completeness checks for {identity.uid}: identity changed")
            return ProfileCompletionDTO()

        self._completion = ProfileCompletionDTO(
            buyer_complete=buyer_complete,
            seller_complete=seller_complete,
            buyer_source=buyer_source,
            seller_source=seller_source,
        )
        await self._set_state(SessionState.RESOLVED)
        return self._completion

    async def _check_buyer_profile(self, identity: IdentityDTO, generation: int) -> tuple[bool, CompletionSource]:
        async def fetch(token: str) -> bool:
            profile = await UserRepository.get_profile(token, self._api)
            return profile.profile_completed

        return await self._check_completion(identity, generation, PROFILE_COMPLETE_KEY, fetch)

    async def _check_seller_profile(self, identity: IdentityDTO, generation: int) -> tuple[bool, CompletionSource]:
        async def fetch(token: str) -> bool:
            completion = await SellerRepository.get_profile_completion(token, self._api)
            return completion.is_complete

        return await self._check_completion(identity, generation, SELLER_PROFILE_COMPLETE_KEY, fetch)

    async def _check_completion(
        self,
        identity: IdentityDTO,
        generation: int,
        marker_key: str,
        fetch: Callable[[str], Awaitable[bool]],
    ) -> tuple[bool, CompletionSource]:
        """
        Ask the commerce service, falling back to the persisted marker on any failure.

        Returns:
            (complete, source)
        """
        try:
            token = await self._provider.get_id_token(identity)
            complete = await fetch(token)
        except Exception as e:
            fallback = await self._read_marker(marker_key)
            logger.warning(
                f"[SessionGate] {marker_key} check failed for {identity.uid} "
                f"({type(e).__name__}: {e}), using fallback={fallback}"
            )
            if fallback is None:
                return False, CompletionSource.DEFAULT
            return fallback, CompletionSource.FALLBACK

        await self._write_marker(marker_key, complete, generation)
        return complete, CompletionSource.SERVER

    # ------------------------------------------------------------------
    # Persisted markers
    # ------------------------------------------------------------------

    async def _claim_markers(self, identity: IdentityDTO, generation: int) -> None:
        """Drop markers left by another identity before any of them can be read."""
        async with self._store_lock:
            if generation != self._generation:
                return
            try:
                async with self._session_factory() as session:
                    owner = await LocalSettingRepository.get(COMPLETION_OWNER_KEY, session)
                    if owner == identity.uid:
                        return
                    await LocalSettingRepository.delete(PROFILE_COMPLETE_KEY, session)
                    await LocalSettingRepository.delete(SELLER_PROFILE_COMPLETE_KEY, session)
                    await LocalSettingRepository.set(COMPLETION_OWNER_KEY, identity.uid, session)
                    await session_commit(session)
            except SQLAlchemyError as e:
                logger.warning(f"[SessionGate] Could not claim completion markers: {e}")

    async def _read_marker(self, key: str) -> bool | None:
        async with self._store_lock:
            try:
                async with self._session_factory() as session:
                    return await LocalSettingRepository.get_flag(key, session, self._fallback_ttl_seconds)
            except SQLAlchemyError as e:
                logger.warning(f"[SessionGate] Could not read marker {key}: {e}")
                return None

    async def _write_marker(self, key: str, value: bool, generation: int) -> None:
        async with self._store_lock:
            # Checked under the lock so a concurrent reset always clears after this write
            if generation != self._generation:
                return
            try:
                async with self._session_factory() as session:
                    await LocalSettingRepository.set_flag(key, value, session)
                    await session_commit(session)
            except SQLAlchemyError as e:
                logger.warning(f"[SessionGate] Could not persist marker {key}: {e}")

    async def _clear_markers(self) -> None:
        async with self._store_lock:
            try:
                async with self._session_factory() as session:
                    await LocalSettingRepository.delete(PROFILE_COMPLETE_KEY, session)
                    await LocalSettingRepository.delete(SELLER_PROFILE_COMPLETE_KEY, session)
                    await LocalSettingRepository.delete(COMPLETION_OWNER_KEY, session)
                    await session_commit(session)
            except SQLAlchemyError as e:
                logger.warning(f"[SessionGate] Could not clear completion markers: {e}")

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    async def _reset(self) -> None:
        self._generation += 1
        self._identity = None
        self._completion = ProfileCompletionDTO()
        self._resolve_task = None
        await self._clear_markers()
        await self._set_state(SessionState.ANONYMOUS)

    async def _set_state(self, state: SessionState) -> None:
        if state != self._state:
            logger.debug(f"[SessionGate] {self._state.value} -> {state.value}")
        self._state = state
        await self._notify()

    async def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                result = listener(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"[SessionGate] Listener {listener!r} failed: {e}", exc_info=True)
