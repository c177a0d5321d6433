"""
Custom exceptions for the marketplace client core.

Exception Hierarchy:
--------------------
MarketplaceException (base)
├── ApiException
│   ├── NetworkException
│   ├── AuthorizationException
│   ├── RemoteServiceException
│   └── InvalidResponseException
├── SessionException
│   └── NotAuthenticatedException
└── CartException
    ├── CartNotLoadedException
    ├── CartItemNotFoundException
    ├── InvalidQuantityException
    ├── StockLimitExceededException
    └── MutationInProgressException

Usage:
------
Services raise specific exceptions:
    raise StockLimitExceededException(cart_item_id="ci_1", requested=5, available=3)

Presentation code catches and displays user-friendly messages:
    try:
        await cart_sync.update_quantity(item_id, quantity)
    except CartException as e:
        show_toast(str(e))
"""

from .base import MarketplaceException
from .api import (
    ApiException,
    NetworkException,
    AuthorizationException,
    RemoteServiceException,
    InvalidResponseException,
)
from .session import SessionException, NotAuthenticatedException
from .cart import (
    CartException,
    CartNotLoadedException,
    CartItemNotFoundException,
    InvalidQuantityException,
    StockLimitExceededException,
    MutationInProgressException,
)

__all__ = [
    # Base
    'MarketplaceException',

    # API
    'ApiException',
    'NetworkException',
    'AuthorizationException',
    'RemoteServiceException',
    'InvalidResponseException',

    # Session
    'SessionException',
    'NotAuthenticatedException',

    # Cart
    'CartException',
    'CartNotLoadedException',
    'CartItemNotFoundException',
    'InvalidQuantityException',
    'StockLimitExceededException',
    'MutationInProgressException',
]
