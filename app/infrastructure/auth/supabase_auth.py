"""
Auth providers.

SupabaseAuthProvider resolves the signed-in user from a hosted auth
endpoint; StaticAuthProvider serves a fixed identity for local/offline use.
"""

import logging
from typing import Optional

import httpx

from app.domain.models import UserIdentity

logger = logging.getLogger(__name__)


class SupabaseAuthProvider:
    """Identity for one access token, checked against /auth/v1/user"""

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        access_token: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.access_token = access_token
        self.timeout = timeout
        self.transport = transport
        self._cached: Optional[UserIdentity] = None

    async def current_user(self) -> Optional[UserIdentity]:
        """
        Returns:
            The user behind the access token, or None when there is no token,
            the token is rejected, or the auth service cannot be reached
        """
        if not self.access_token:
            return None
        if self._cached is not None:
            return self._cached

        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "apikey": self.anon_key,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(f"{self.base_url}/auth/v1/user", headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Auth service unreachable: %s", exc)
            return None

        if resp.status_code in (401, 403):
            logger.info("Access token rejected by auth service")
            return None
        if resp.status_code != 200:
            logger.warning("Unexpected auth service response: %s", resp.status_code)
            return None

        try:
            payload = resp.json()
        except ValueError:
            logger.warning("Auth service returned a non-JSON body")
            return None
        user_id = payload.get("id") if isinstance(payload, dict) else None
        if not user_id:
            logger.warning("Auth service response has no user id")
            return None

        self._cached = UserIdentity(id=str(user_id), email=payload.get("email"))
        return self._cached


class StaticAuthProvider:
    """Always the same identity (or always signed out)"""

    def __init__(self, user: Optional[UserIdentity]):
        self.user = user

    async def current_user(self) -> Optional[UserIdentity]:
        return self.user
