"""
User directory

The posts service has no access to the users database. Author names and
avatars are looked up over HTTP from the users service and copied onto the
post or comment being written.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

import httpx

from shared.errors import NotFoundError, UpstreamError


logger = logging.getLogger(__name__)

USERS_SERVICE_URL = os.getenv("USERS_SERVICE_URL", "http://localhost:5100")
HTTP_TIMEOUT = 5.0


@dataclass(frozen=True)
class UserSnapshot:
    user_id: int
    name: str
    avatar: str


class UserDirectory:
    """
    Async client for the users service profile endpoint.

    Args:
        base_url: Base URL of the users service
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (used to stub the service in tests)
    """

    def __init__(
        self,
        base_url: str = USERS_SERVICE_URL,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def get_user(self, user_id: int) -> UserSnapshot:
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(f"/users/{user_id}")
        except httpx.HTTPError as e:
            logger.warning("Users service lookup for %s failed: %s", user_id, e)
            raise UpstreamError("Users service not available")

        if resp.status_code == 404:
            raise NotFoundError("User not found")
        if resp.status_code != 200:
            logger.warning("Users service returned %s for user %s", resp.status_code, user_id)
            raise UpstreamError("Failed to resolve user from users service")

        data = resp.json()
        if data.get("user_id") is None:
            raise UpstreamError("User data missing user_id")
        return UserSnapshot(user_id=int(data["user_id"]), name=data.get("name", ""), avatar=data.get("avatar") or "")


def get_user_directory() -> UserDirectory:
    return UserDirectory()
