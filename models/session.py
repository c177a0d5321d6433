from pydantic import BaseModel, ConfigDict

from enums.completion_source import CompletionSource
from enums.guard_outcome import GuardOutcome
from enums.session_state import SessionState


class IdentityDTO(BaseModel):
    """Authenticated principal as reported by the identity provider."""
    model_config = ConfigDict(frozen=True)

    uid: str
    name: str | None = None
    email: str | None = None


class ProfileCompletionDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    buyer_complete: bool = False
    seller_complete: bool = False
    buyer_source: CompletionSource = CompletionSource.DEFAULT
    seller_source: CompletionSource = CompletionSource.DEFAULT

    @property
    def degraded(self) -> bool:
        return CompletionSource.FALLBACK in (self.buyer_source, self.seller_source)


class SessionSnapshotDTO(BaseModel):
    """Read-only view handed to state listeners."""
    model_config = ConfigDict(frozen=True)

    state: SessionState
    identity: IdentityDTO | None = None
    completion: ProfileCompletionDTO = ProfileCompletionDTO()


class RedirectDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    return_path: str | None = None  # Where the flow continues once the redirect target is done


class GuardResultDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    outcome: GuardOutcome
    redirect: RedirectDTO | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome == GuardOutcome.ALLOWED

    @property
    def pending(self) -> bool:
        return self.outcome == GuardOutcome.PENDING
