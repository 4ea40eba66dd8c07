"""
Tests for the OAuth client credentials provider.
"""

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from azblobstore.auth.credentials import ClientSecretCredential
from azblobstore.auth.exceptions import TokenRequestError
from azblobstore.auth.oauth import (
    STORAGE_SCOPE,
    AuthorityHosts,
    ClientSecretOAuthProvider,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def token_handler(requests, expires_in=3600):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "token_type": "Bearer",
                "expires_in": expires_in,
                "access_token": f"token-{len(requests)}",
            },
        )
    return handler


@pytest.fixture
def credential():
    return ClientSecretCredential(client_id="client", client_secret="secret", tenant_id="tenant")


class TestClientSecretOAuthProvider:
    """Test suite for token acquisition and caching."""

    def test_token_url_defaults_to_public_cloud(self, credential):
        provider = ClientSecretOAuthProvider(credential)

        assert provider.token_url == "https://login.microsoftonline.com/tenant/oauth2/v2.0/token"

    def test_token_url_custom_authority(self):
        credential = ClientSecretCredential(
            client_id="client",
            client_secret="secret",
            tenant_id="tenant",
            authority_host=AuthorityHosts.AZURE_GOVERNMENT + "/",
        )

        provider = ClientSecretOAuthProvider(credential)

        assert provider.token_url == "https://login.microsoftonline.us/tenant/oauth2/v2.0/token"

    def test_provider_built_outside_event_loop(self, credential):
        """Test a provider created before any loop runs works in later loops."""
        requests = []
        clock = FakeClock()
        provider = ClientSecretOAuthProvider(credential, clock=clock)

        async def fetch():
            async with httpx.AsyncClient(transport=httpx.MockTransport(token_handler(requests))) as http:
                return await provider.fetch_token(http)

        first = asyncio.run(fetch())
        clock.now += 4000
        second = asyncio.run(fetch())

        assert first == "token-1"
        assert second == "token-2"

    @pytest.mark.asyncio
    async def test_fetch_token(self, credential):
        """Test the client credentials grant request."""
        requests = []
        provider = ClientSecretOAuthProvider(credential)

        async with httpx.AsyncClient(transport=httpx.MockTransport(token_handler(requests))) as http:
            token = await provider.fetch_token(http)

        assert token == "token-1"
        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == provider.token_url
        form = parse_qs(request.content.decode())
        assert form == {
            "client_id": ["client"],
            "client_secret": ["secret"],
            "scope": [STORAGE_SCOPE],
            "grant_type": ["client_credentials"],
        }

    @pytest.mark.asyncio
    async def test_token_is_cached(self, credential):
        requests = []
        clock = FakeClock()
        provider = ClientSecretOAuthProvider(credential, clock=clock)

        async with httpx.AsyncClient(transport=httpx.MockTransport(token_handler(requests))) as http:
            first = await provider.fetch_token(http)
            clock.now += 3000
            second = await provider.fetch_token(http)

        assert first == second == "token-1"
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_token_refreshed_before_expiry(self, credential):
        """Test a token is replaced within the refresh margin."""
        requests = []
        clock = FakeClock()
        provider = ClientSecretOAuthProvider(credential, clock=clock)

        async with httpx.AsyncClient(transport=httpx.MockTransport(token_handler(requests))) as http:
            await provider.fetch_token(http)
            clock.now += 3301
            token = await provider.fetch_token(http)

        assert token == "token-2"

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_token(self, credential):
        requests = []
        provider = ClientSecretOAuthProvider(credential)

        async with httpx.AsyncClient(transport=httpx.MockTransport(token_handler(requests))) as http:
            tokens = await asyncio.gather(*(provider.fetch_token(http) for _ in range(5)))

        assert set(tokens) == {"token-1"}
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_error_response(self, credential):
        def handler(request):
            return httpx.Response(
                401,
                json={"error": "invalid_client", "error_description": "AADSTS7000215"},
            )

        provider = ClientSecretOAuthProvider(credential)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            with pytest.raises(TokenRequestError) as exc_info:
                await provider.fetch_token(http)

        assert exc_info.value.status_code == 401
        assert exc_info.value.error == "invalid_client"
        assert "AADSTS7000215" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_json_response(self, credential):
        provider = ClientSecretOAuthProvider(credential)
        transport = httpx.MockTransport(lambda request: httpx.Response(502, text="Bad Gateway"))

        async with httpx.AsyncClient(transport=transport) as http:
            with pytest.raises(TokenRequestError) as exc_info:
                await provider.fetch_token(http)

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_transport_error(self, credential):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = ClientSecretOAuthProvider(credential)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            with pytest.raises(TokenRequestError) as exc_info:
                await provider.fetch_token(http)

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
