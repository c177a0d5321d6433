from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class UserProfileDTO(BaseModel):
    """Subset of GET /user/profile the client core relies on."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str | None = None
    email: str | None = None
    name: str | None = None
    profile_completed: bool = False
    is_seller: bool = False


class SellerProfileCompletionDTO(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    is_complete: bool = False
