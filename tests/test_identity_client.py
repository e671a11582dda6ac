"""Identity provider client against a mocked transport"""

import json

import httpx
import pytest

from medibook.errors import AuthenticationError, UpstreamError, ValidationError
from medibook.identity import IdentityClient


def make_client(handler) -> IdentityClient:
    return IdentityClient(
        base_url="https://identity.test/",
        service_key="service-role-key",
        anon_key="anon-key",
        timeout=2,
        transport=httpx.MockTransport(handler),
    )


async def test_create_user_uses_admin_endpoint():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "user-1", "email": "meera@example.com"})

    user = await make_client(handler).create_user("meera@example.com", "s3cret-pass", {"role": "patient"})

    assert user["id"] == "user-1"
    assert seen["url"] == "https://identity.test/auth/v1/admin/users"
    assert seen["auth"] == "Bearer service-role-key"
    assert seen["body"]["user_metadata"] == {"role": "patient"}


async def test_duplicate_identity_is_validation_error():
    def handler(request):
        return httpx.Response(422, json={"msg": "A user with this email address has already been registered"})

    with pytest.raises(ValidationError) as exc_info:
        await make_client(handler).create_user("meera@example.com", "s3cret-pass")

    assert "already been registered" in exc_info.value.message


async def test_provider_outage_is_upstream_error():
    def handler(request):
        return httpx.Response(503, text="upstream connect error")

    with pytest.raises(UpstreamError):
        await make_client(handler).delete_user("user-1")


async def test_timeout_is_upstream_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamError) as exc_info:
        await make_client(handler).create_user("meera@example.com", "s3cret-pass")

    assert "timed out" in exc_info.value.detail


async def test_sign_in_sends_password_grant_with_anon_key():
    seen = {}

    def handler(request):
        seen["grant"] = request.url.params["grant_type"]
        seen["apikey"] = request.headers["apikey"]
        return httpx.Response(200, json={"access_token": "a", "refresh_token": "r", "expires_in": 3600})

    session = await make_client(handler).sign_in_with_password("meera@example.com", "s3cret-pass")

    assert session["access_token"] == "a"
    assert seen == {"grant": "password", "apikey": "anon-key"}


async def test_bad_credentials_are_authentication_error():
    def handler(request):
        return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"})

    with pytest.raises(AuthenticationError):
        await make_client(handler).sign_in_with_password("meera@example.com", "wrong")


async def test_refresh_uses_refresh_grant():
    def handler(request):
        assert request.url.params["grant_type"] == "refresh_token"
        return httpx.Response(200, json={"access_token": "new"})

    session = await make_client(handler).refresh_session("refresh-token")

    assert session["access_token"] == "new"


async def test_sign_out_with_dead_token_is_ignored():
    def handler(request):
        assert request.headers["Authorization"] == "Bearer stale"
        return httpx.Response(401, json={"msg": "invalid JWT"})

    await make_client(handler).sign_out("stale")


async def test_admin_call_without_service_key_is_upstream_error():
    client = IdentityClient(base_url="https://identity.test", service_key=None, anon_key="anon-key")

    with pytest.raises(UpstreamError):
        await client.delete_user("user-1")
