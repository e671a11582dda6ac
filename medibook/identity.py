"""
Supabase Auth (GoTrue) client.

Thin async wrapper over the REST endpoints the API needs: admin user
creation/deletion for registration and password sign-in, refresh and
sign-out for sessions. Every call is bounded by IDENTITY_TIMEOUT_SECONDS.
"""

import logging
from typing import Any, Optional

import httpx

from .config import (
    IDENTITY_TIMEOUT_SECONDS,
    SUPABASE_ANON_KEY,
    SUPABASE_SERVICE_ROLE_KEY,
    SUPABASE_URL,
)
from .errors import AuthenticationError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)


class IdentityClient:
    """Client for the hosted identity provider"""

    def __init__(
        self,
        base_url: str = SUPABASE_URL,
        service_key: Optional[str] = SUPABASE_SERVICE_ROLE_KEY,
        anon_key: Optional[str] = SUPABASE_ANON_KEY,
        timeout: float = IDENTITY_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = f"{base_url.rstrip('/')}/auth/v1"
        self.service_key = service_key
        self.anon_key = anon_key or service_key
        self.timeout = timeout
        self.transport = transport

    def _headers(self, bearer: Optional[str] = None, admin: bool = False) -> dict[str, str]:
        if admin and not self.service_key:
            logger.error("❌ SUPABASE_SERVICE_ROLE_KEY not configured")
            raise UpstreamError("Identity provider not configured")

        api_key = self.service_key if admin else self.anon_key
        headers = {"apikey": api_key or "", "Content-Type": "application/json"}
        token = bearer or (self.service_key if admin else None)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str],
        json: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                return await client.request(
                    method, f"{self.base_url}{path}", headers=headers, json=json, params=params
                )
        except httpx.TimeoutException as e:
            logger.error(f"⏱️ Identity provider timed out on {method} {path}")
            raise UpstreamError("Identity provider timed out. Please try again.") from e
        except httpx.HTTPError as e:
            logger.error(f"❌ Identity provider unreachable on {method} {path}: {e}")
            raise UpstreamError("Identity provider unavailable. Please try again.") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        return (
            body.get("msg")
            or body.get("message")
            or body.get("error_description")
            or body.get("error")
            or f"HTTP {response.status_code}"
        )

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        if response.is_success:
            return

        message = self._error_message(response)
        if response.status_code >= 500:
            logger.error(f"❌ Identity provider failed to {action}: HTTP {response.status_code} {message}")
            raise UpstreamError(f"Identity provider failed to {action}")

        logger.warning(f"⚠️ Identity provider rejected {action}: HTTP {response.status_code} {message}")
        raise ValidationError(message)

    async def create_user(self, email: str, password: str, metadata: Optional[dict] = None) -> dict[str, Any]:
        """Create an identity (admin API). Returns the provider's user object."""
        response = await self._request(
            "POST",
            "/admin/users",
            headers=self._headers(admin=True),
            json={
                "email": email,
                "password": password,
                "email_confirm": False,
                "user_metadata": metadata or {},
            },
        )
        self._raise_for_status(response, "create user")
        user = response.json()
        logger.info(f"✅ Identity created for {email}: {user.get('id')}")
        return user

    async def delete_user(self, user_id: str) -> None:
        response = await self._request(
            "DELETE", f"/admin/users/{user_id}", headers=self._headers(admin=True)
        )
        self._raise_for_status(response, "delete user")
        logger.info(f"🗑️ Identity {user_id} deleted")

    async def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        response = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            headers=self._headers(),
            json={"email": email, "password": password},
        )
        if response.status_code in (400, 401):
            logger.info(f"🔒 Sign-in rejected for {email}")
            raise AuthenticationError("Invalid email or password")
        self._raise_for_status(response, "sign in")
        return response.json()

    async def refresh_session(self, refresh_token: str) -> dict[str, Any]:
        response = await self._request(
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            headers=self._headers(),
            json={"refresh_token": refresh_token},
        )
        if response.status_code in (400, 401):
            raise AuthenticationError("Session expired. Please sign in again.")
        self._raise_for_status(response, "refresh session")
        return response.json()

    async def sign_out(self, access_token: str) -> None:
        response = await self._request("POST", "/logout", headers=self._headers(bearer=access_token))
        # An already-invalid token means the session is gone; nothing left to do
        if response.status_code == 401:
            return
        self._raise_for_status(response, "sign out")


_identity_client: Optional[IdentityClient] = None


def get_identity_client() -> IdentityClient:
    """FastAPI dependency returning the shared identity client"""
    global _identity_client
    if _identity_client is None:
        if not SUPABASE_URL:
            logger.error("❌ SUPABASE_URL not configured")
            raise UpstreamError("Identity provider not configured")
        _identity_client = IdentityClient()
    return _identity_client
