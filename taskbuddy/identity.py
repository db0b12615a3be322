"""Client for the hosted identity provider's OAuth endpoints."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

import httpx

from .config import IDENTITY_API_KEY, IDENTITY_PROVIDER, IDENTITY_URL
from .exceptions import IdentityError
from .schemas.auth import Identity

logger = logging.getLogger(__name__)


class IdentityProvider:
    """Contract used by the auth router; tests swap in a fake."""

    def authorize_url(self, redirect_to: str) -> str:
        raise NotImplementedError

    def exchange_code(self, code: str) -> Identity:
        raise NotImplementedError


class HttpIdentityProvider(IdentityProvider):
    def __init__(
        self,
        base_url: str = IDENTITY_URL,
        api_key: str = IDENTITY_API_KEY,
        provider: str = IDENTITY_PROVIDER,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.provider = provider
        self.timeout = timeout

    def authorize_url(self, redirect_to: str) -> str:
        query = urlencode({"provider": self.provider, "redirect_to": redirect_to})
        return f"{self.base_url}/authorize?{query}"

    def exchange_code(self, code: str) -> Identity:
        """Trade an authorization code for the signed-in user."""
        try:
            resp = httpx.post(
                f"{self.base_url}/token",
                params={"grant_type": "authorization_code"},
                json={"auth_code": code},
                headers={"apikey": self.api_key, "Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise IdentityError(f"Code exchange failed: {e}") from e

        user = data.get("user") if isinstance(data, dict) else None
        if not user or not user.get("id"):
            raise IdentityError("Code exchange returned no user")
        logger.info("Code exchanged for user=%s", user["id"])
        return Identity(
            id=str(user["id"]),
            email=user.get("email"),
            user_metadata=user.get("user_metadata") or {},
        )
