"""
Blob Storage REST client.

Owns the httpx connection pool, builds blob and container URLs, applies
the configured credential strategy to every request, retries transient
failures and turns error statuses into typed exceptions.
"""

import asyncio
import logging
import random
import time
import uuid
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote, urlencode, urlsplit

import httpx

from azblobstore.auth.credentials import (
    BearerTokenCredential,
    ClientSecretCredential,
    SASTokenCredential,
    SharedKeyCredential,
)
from azblobstore.auth.oauth import ClientSecretOAuthProvider
from azblobstore.auth.sharedkey import sign_request
from azblobstore.core.config_manager import AzureConfig
from azblobstore.core.exceptions import InsecureEndpointError
from azblobstore.core.logging_config import request_id
from azblobstore.core.retry import Backoff, is_retryable_status, parse_retry_after

from .exceptions import AlreadyExistsError, NotFoundError, PreconditionError, RequestError
from .models import ListPage, format_http_date

logger = logging.getLogger(__name__)

API_VERSION = "2021-08-06"
DELIMITER = "/"

QueryPairs = Sequence[Tuple[str, str]]


class AzureClient:
    """
    REST client for one container.

    Args:
        config: Resolved store configuration
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests
    """

    def __init__(self, config: AzureConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        options = config.client_options
        if urlsplit(config.service).scheme == "http" and not options.allow_http:
            raise InsecureEndpointError(config.service)

        self.config = config
        headers = {
            "User-Agent": options.user_agent,
            # Content is returned exactly as stored
            "Accept-Encoding": "identity",
            **options.default_headers,
        }
        client_kwargs = {
            "timeout": httpx.Timeout(options.timeout, connect=options.connect_timeout),
            "headers": headers,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        elif options.proxy_url:
            client_kwargs["proxy"] = options.proxy_url
        self._http = httpx.AsyncClient(**client_kwargs)

        self._token_provider: Optional[ClientSecretOAuthProvider] = None
        if isinstance(config.credentials, ClientSecretCredential):
            self._token_provider = ClientSecretOAuthProvider(config.credentials)
        self._random = random.Random()

    async def close(self) -> None:
        await self._http.aclose()

    def path_url(self, location: str) -> str:
        """Full URL of the blob at a location."""
        return f"{self.config.container_url()}/{quote(location.strip(DELIMITER), safe='/')}"

    async def put_request(
        self,
        location: str,
        content: bytes,
        *,
        is_block_op: bool = False,
        params: QueryPairs = (),
    ) -> httpx.Response:
        """PUT a blob, a block (comp=block) or a block list (comp=blocklist)."""
        headers = {}
        if not is_block_op:
            headers["x-ms-blob-type"] = "BlockBlob"
        return await self._send(
            "PUT",
            self.path_url(location),
            params=params,
            headers=headers,
            content=content,
            path=location,
        )

    async def get_request(
        self,
        location: str,
        byte_range: Optional[Tuple[int, int]] = None,
        head: bool = False,
    ) -> httpx.Response:
        """
        GET or HEAD a blob.

        GET responses are returned unread; the caller streams the body and
        closes the response.

        Args:
            location: Blob path
            byte_range: Optional half-open (start, end) range
            head: Issue HEAD instead of GET
        """
        headers = {}
        if byte_range is not None:
            start, end = byte_range
            if start < 0 or end <= start:
                raise ValueError(f"Invalid byte range: {start}..{end}")
            headers["Range"] = f"bytes={start}-{end - 1}"
        return await self._send(
            "HEAD" if head else "GET",
            self.path_url(location),
            headers=headers,
            stream=not head,
            path=location,
        )

    async def delete_request(self, location: str) -> None:
        response = await self._send("DELETE", self.path_url(location), path=location)
        await response.aclose()

    async def copy_request(self, source: str, destination: str, overwrite: bool) -> None:
        """
        Server-side copy within the container.

        Raises:
            AlreadyExistsError: If overwrite is False and the destination exists
        """
        copy_source = self.path_url(source)
        if isinstance(self.config.credentials, SASTokenCredential):
            copy_source = _append_query(copy_source, self.config.credentials.query_pairs)

        headers = {"x-ms-copy-source": copy_source}
        if not overwrite:
            headers["If-None-Match"] = "*"

        try:
            response = await self._send(
                "PUT",
                self.path_url(destination),
                headers=headers,
                content=b"",
                path=destination,
            )
        except RequestError as e:
            # A 409 only means "destination exists" for the conditional copy
            if not overwrite and e.status_code == 409:
                raise AlreadyExistsError(destination, e.error_code) from e
            raise
        await response.aclose()

    async def list_paginated(
        self,
        prefix: Optional[str] = None,
        delimiter: bool = False,
    ) -> AsyncIterator[ListPage]:
        """
        Iterate over List Blobs pages, following NextMarker.

        A non-empty prefix is treated as a directory and gets a trailing
        delimiter.
        """
        params: List[Tuple[str, str]] = [("restype", "container"), ("comp", "list")]
        formatted_prefix = (prefix or "").strip(DELIMITER)
        if formatted_prefix:
            params.append(("prefix", formatted_prefix + DELIMITER))
        if delimiter:
            params.append(("delimiter", DELIMITER))

        marker: Optional[str] = None
        pages = 0
        while True:
            page_params = params + [("marker", marker)] if marker else params
            response = await self._send(
                "GET",
                self.config.container_url(),
                params=page_params,
                path=formatted_prefix,
            )
            page = ListPage.from_xml(response.content)
            pages += 1
            logger.debug(
                f"List page {pages}: {len(page.objects)} objects, "
                f"{len(page.common_prefixes)} prefixes"
            )
            yield page

            if not page.next_marker:
                break
            marker = page.next_marker

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: QueryPairs = (),
        headers: Optional[Dict[str, str]] = None,
        content: Optional[bytes] = None,
        stream: bool = False,
        path: Optional[str] = None,
    ) -> httpx.Response:
        """Send a request, retrying transient failures."""
        credentials = self.config.credentials
        query = list(params)
        if isinstance(credentials, SASTokenCredential):
            query.extend(credentials.query_pairs)
        full_url = _append_query(url, query)

        retry_config = self.config.retry_config
        backoff = Backoff(retry_config, self._random)
        started = time.monotonic()
        retries = 0

        while True:
            req_id = str(uuid.uuid4())
            token = request_id.set(req_id)
            try:
                request = self._http.build_request(
                    method,
                    full_url,
                    headers={
                        **(headers or {}),
                        "x-ms-version": API_VERSION,
                        "x-ms-date": format_http_date(datetime.now(timezone.utc)),
                        "x-ms-client-request-id": req_id,
                    },
                    content=content,
                )
                await self._authorize(request)

                logger.debug(f"{method} {path or url} (attempt {retries + 1})")
                try:
                    response = await self._http.send(request, stream=stream)
                except httpx.TransportError as e:
                    if self._can_retry(retries, started):
                        delay = backoff.next()
                        logger.warning(f"{method} {path or url} failed: {e}; retrying in {delay:.2f}s")
                        await asyncio.sleep(delay)
                        retries += 1
                        continue
                    raise RequestError(
                        f"Error performing {method} {path or url} after {retries} retries: {e}",
                        path=path,
                    ) from e

                if response.is_success:
                    return response

                if is_retryable_status(response.status_code) and self._can_retry(retries, started):
                    delay = parse_retry_after(response.headers.get("retry-after"))
                    if delay is None:
                        delay = backoff.next()
                    logger.warning(
                        f"{method} {path or url} returned {response.status_code}; "
                        f"retrying in {delay:.2f}s"
                    )
                    await response.aclose()
                    await asyncio.sleep(delay)
                    retries += 1
                    continue

                await self._raise_for_status(method, response, path)
            finally:
                request_id.reset(token)

    def _can_retry(self, retries: int, started: float) -> bool:
        retry_config = self.config.retry_config
        return (
            retries < retry_config.max_retries
            and time.monotonic() - started < retry_config.retry_timeout
        )

    async def _authorize(self, request: httpx.Request) -> None:
        credentials = self.config.credentials
        if isinstance(credentials, SharedKeyCredential):
            request.headers["Authorization"] = sign_request(
                request.method,
                str(request.url),
                request.headers,
                self.config.account,
                credentials.account_key,
            )
        elif isinstance(credentials, BearerTokenCredential):
            request.headers["Authorization"] = f"Bearer {credentials.token}"
        elif isinstance(credentials, ClientSecretCredential):
            token = await self._token_provider.fetch_token(self._http)
            request.headers["Authorization"] = f"Bearer {token}"
        # SAS pairs are already part of the URL

    async def _raise_for_status(
        self,
        method: str,
        response: httpx.Response,
        path: Optional[str],
    ) -> None:
        await response.aread()
        await response.aclose()

        status_code = response.status_code
        error_code = response.headers.get("x-ms-error-code", "")
        location = path or str(response.request.url)

        if status_code == 404:
            raise NotFoundError(location, error_code or "BlobNotFound")
        if status_code == 412:
            raise PreconditionError(location, error_code or "ConditionNotMet")

        logger.error(f"{method} {location} failed with status {status_code} {error_code}")
        raise RequestError(
            f"{method} {location} failed with status {status_code}: {error_code or response.reason_phrase}",
            status_code,
            error_code or "RequestFailed",
            path,
        )


def _append_query(url: str, pairs: QueryPairs) -> str:
    """Append percent-encoded query pairs (spaces as %20, not '+')."""
    if not pairs:
        return url
    separator = "&" if urlsplit(url).query else "?"
    return f"{url}{separator}{urlencode(list(pairs), quote_via=quote, safe='')}"
