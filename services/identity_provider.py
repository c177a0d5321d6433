from abc import ABC, abstractmethod

from models.session import IdentityDTO


class IdentityProvider(ABC):
    """
    External identity provider.

    Issues short-lived bearer tokens for the signed-in identity and reports
    identity changes to SessionGate.on_identity_changed().
    """

    @abstractmethod
    async def get_id_token(self, identity: IdentityDTO) -> str:
        """Return a fresh bearer token for the identity."""

    @abstractmethod
    async def sign_out(self) -> None:
        """End the provider session."""
