from commerce_api.client import CommerceApiClient, parse_response
from models.user import UserProfileDTO


class UserRepository:
    @staticmethod
    async def get_profile(token: str, api: CommerceApiClient) -> UserProfileDTO:
        data = await api.get("/user/profile", token)
        return parse_response(UserProfileDTO, data, "GET", "/user/profile")
