from commerce_api.client import CommerceApiClient, parse_response
from models.user import SellerProfileCompletionDTO


class SellerRepository:
    @staticmethod
    async def get_profile_completion(token: str, api: CommerceApiClient) -> SellerProfileCompletionDTO:
        data = await api.get("/seller/profile-complete", token)
        return parse_response(SellerProfileCompletionDTO, data, "GET", "/seller/profile-complete")
