"""
Composition root for presentation code.

    client = MarketplaceClient(provider)
    await client.start()
    provider.on_change(client.session.on_identity_changed)
    ...
    await client.close()
"""

import logging

from commerce_api.client import CommerceApiClient
from db import create_db_and_tables, get_db_session
from services.cart_sync import CartSynchronizer
from services.identity_provider import IdentityProvider
from services.pricing import PricingService
from services.session_gate import SessionGate, Navigator
from utils.logging_config import setup_logging


class MarketplaceClient:

    def __init__(
        self,
        provider: IdentityProvider,
        api: CommerceApiClient | None = None,
        navigator: Navigator | None = None,
        session_factory=get_db_session,
    ):
        self.api = api or CommerceApiClient()
        self.session = SessionGate(provider, self.api, session_factory=session_factory, navigator=navigator)
        self.cart = CartSynchronizer(self.session, self.api)
        self.pricing = PricingService
        self._detach_cart = None

    async def start(self, configure_logging: bool = True, create_tables: bool = True) -> None:
        if configure_logging:
            setup_logging()
        if create_tables:
            await create_db_and_tables()
        self._detach_cart = self.cart.attach()
        logging.info("[Init] Marketplace client started")

    async def close(self) -> None:
        if self._detach_cart is not None:
            self._detach_cart()
            self._detach_cart = None
        await self.cart.close()
        await self.api.close()
