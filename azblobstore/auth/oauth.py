"""
OAuth 2.0 client credentials flow for service principals.

Tokens are requested from the Microsoft identity platform and cached until
shortly before they expire.

Reference: https://docs.microsoft.com/en-us/azure/active-directory/develop/v2-oauth2-client-creds-grant-flow
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from azblobstore.auth.credentials import ClientSecretCredential
from azblobstore.auth.exceptions import TokenRequestError

logger = logging.getLogger(__name__)


class AuthorityHosts:
    """Authority hosts of the Azure clouds."""
    AZURE_CHINA = "https://login.chinacloudapi.cn"
    AZURE_GERMANY = "https://login.microsoftonline.de"
    AZURE_GOVERNMENT = "https://login.microsoftonline.us"
    AZURE_PUBLIC_CLOUD = "https://login.microsoftonline.com"


STORAGE_SCOPE = "https://storage.azure.com/.default"

# Refresh tokens this many seconds before they expire
TOKEN_REFRESH_MARGIN_SECONDS = 300


@dataclass
class AccessToken:
    """Access token with its expiry on the monotonic clock."""
    token: str
    expires_at: float


class ClientSecretOAuthProvider:
    """
    Acquires and caches storage access tokens for a service principal.

    Concurrent requests share one in-flight token request.
    """

    def __init__(
        self,
        credential: ClientSecretCredential,
        clock: Callable[[], float] = time.monotonic
    ):
        authority_host = credential.authority_host or AuthorityHosts.AZURE_PUBLIC_CLOUD
        self.client_id = credential.client_id
        self._client_secret = credential.client_secret
        self.token_url = f"{authority_host.rstrip('/')}/{credential.tenant_id}/oauth2/v2.0/token"
        self._clock = clock
        self._cached: Optional[AccessToken] = None
        # Created on first use so it belongs to the loop that fetches tokens
        self._lock: Optional[asyncio.Lock] = None

    async def fetch_token(self, http: httpx.AsyncClient) -> str:
        """
        Return a valid access token, requesting a new one if needed.

        Args:
            http: Client used to reach the authority host

        Raises:
            TokenRequestError: If the authority host rejects the request
        """
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self._cached and self._clock() < self._cached.expires_at:
                return self._cached.token

            logger.debug(f"Requesting access token for client {self.client_id}")
            try:
                response = await http.post(
                    self.token_url,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self._client_secret,
                        "scope": STORAGE_SCOPE,
                        "grant_type": "client_credentials",
                    },
                    headers={"Accept": "application/json"},
                )
            except httpx.HTTPError as e:
                raise TokenRequestError(None, "transport_error", str(e)) from e

            try:
                body = response.json()
            except ValueError:
                body = {}

            if response.status_code != 200 or "access_token" not in body:
                raise TokenRequestError(
                    response.status_code,
                    body.get("error", "token_request_failed"),
                    body.get("error_description"),
                )

            expires_in = int(body.get("expires_in", 3600))
            self._cached = AccessToken(
                token=body["access_token"],
                expires_at=self._clock() + max(expires_in - TOKEN_REFRESH_MARGIN_SECONDS, 0),
            )
            logger.info(f"Acquired access token for client {self.client_id} (expires in {expires_in}s)")
            return self._cached.token
