from commerce_api.client import CommerceApiClient, parse_response

__all__ = ['CommerceApiClient', 'parse_response']
