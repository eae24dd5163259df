import httpx
import pytest

from app.infrastructure.auth.supabase_auth import SupabaseAuthProvider


def provider(handler, token="token-abc") -> SupabaseAuthProvider:
    return SupabaseAuthProvider(
        base_url="https://project.example.co/",
        anon_key="anon-key",
        access_token=token,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_valid_token_resolves_user_once():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "user-42", "email": "a@example.com"})

    auth = provider(handler)
    user = await auth.current_user()
    again = await auth.current_user()

    assert user.id == "user-42"
    assert user.email == "a@example.com"
    assert again is user
    assert len(seen) == 1
    assert seen[0].url == "https://project.example.co/auth/v1/user"
    assert seen[0].headers["Authorization"] == "Bearer token-abc"
    assert seen[0].headers["apikey"] == "anon-key"


@pytest.mark.asyncio
async def test_no_token_means_signed_out_without_a_request():
    def handler(request):
        raise AssertionError("no request expected")

    assert await provider(handler, token=None).current_user() is None


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403, 500])
async def test_rejected_token_means_signed_out(status):
    auth = provider(lambda request: httpx.Response(status, json={"msg": "nope"}))
    assert await auth.current_user() is None


@pytest.mark.asyncio
async def test_unreachable_service_means_signed_out():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    assert await provider(handler).current_user() is None


@pytest.mark.asyncio
async def test_response_without_id_means_signed_out():
    auth = provider(lambda request: httpx.Response(200, json={"email": "x@example.com"}))
    assert await auth.current_user() is None


@pytest.mark.asyncio
async def test_non_json_response_means_signed_out():
    auth = provider(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
    assert await auth.current_user() is None
