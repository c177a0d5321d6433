"""
HTTP client for the remote commerce service.

Every call is authorized with a bearer token obtained from the identity
provider for that call. The client never retries: transport failures,
timeouts and error statuses are translated into ApiException subclasses and
surfaced to the caller.
"""

import asyncio
import json
import logging
from typing import Any, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError

import config
from exceptions.api import (
    NetworkException,
    AuthorizationException,
    RemoteServiceException,
    InvalidResponseException,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_response(model: type[ModelT], data: Any, method: str, path: str) -> ModelT:
    """
    Validate a decoded response body into a DTO.

    Raises:
        InvalidResponseException: Body does not match the DTO
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"[CommerceApi] {method} {path} payload rejected by {model.__name__}: {e.error_count()} error(s)")
        raise InvalidResponseException(method, path, f"unexpected payload for {model.__name__}") from e


class CommerceApiClient:
    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else config.API_TIMEOUT_SECONDS
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "CommerceApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def request(self, method: str, path: str, token: str | None, payload: dict | None = None) -> Any:
        """
        Perform one JSON request.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            path: Path below the API base URL (e.g., "/cart/items/abc")
            token: Bearer token for the acting identity
            payload: JSON body for POST/PUT

        Returns:
            Decoded JSON body (None for an empty body)

        Raises:
            AuthorizationException: Missing token or HTTP 401/403
            RemoteServiceException: Any other non-2xx status
            InvalidResponseException: 2xx response whose body is not JSON
            NetworkException: Connection error or timeout
        """
        if not token:
            raise AuthorizationException(path)

        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {token}"}
        session = await self._get_session()

        try:
            async with session.request(method, url, json=payload, headers=headers) as response:
                if response.status in (401, 403):
                    raise AuthorizationException(path, response.status)
                if response.status >= 400:
                    raise RemoteServiceException(method, path, response.status, await self._error_message(response))
                if response.status == 204:
                    return None
                body = await response.text()
                if not body:
                    return None
                try:
                    return json.loads(body)
                except ValueError as e:
                    logger.warning(f"[CommerceApi] {method} {path} returned a non-JSON body")
                    raise InvalidResponseException(method, path, f"invalid JSON ({e})") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"[CommerceApi] {method} {path} failed: {type(e).__name__}")
            raise NetworkException(method, path, str(e) or type(e).__name__) from e

    @staticmethod
    async def _error_message(response: aiohttp.ClientResponse) -> str | None:
        try:
            data = await response.json(content_type=None)
        except (aiohttp.ClientError, ValueError):
            return None
        if isinstance(data, dict):
            return data.get("error") or data.get("message")
        return None

    async def get(self, path: str, token: str | None) -> Any:
        return await self.request("GET", path, token)

    async def post(self, path: str, token: str | None, payload: dict) -> Any:
        return await self.request("POST", path, token, payload)

    async def put(self, path: str, token: str | None, payload: dict) -> Any:
        return await self.request("PUT", path, token, payload)

    async def delete(self, path: str, token: str | None) -> Any:
        return await self.request("DELETE", path, token)
