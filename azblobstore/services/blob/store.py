"""
Azure Blob Storage implementation of the object store interface.
"""

import logging
from typing import AsyncIterator, Optional, Tuple

from azblobstore.core.multipart import DEFAULT_MAX_CONCURRENCY, CloudMultiPartUpload
from azblobstore.services.interface import GetResult, ListResult, ObjectMeta, ObjectStore

from .client import AzureClient
from .exceptions import (
    InvalidContentLengthError,
    InvalidLastModifiedError,
    MissingContentLengthError,
    MissingLastModifiedError,
)
from .models import parse_http_date
from .multipart import AzureMultiPartUpload

logger = logging.getLogger(__name__)


class MicrosoftAzure(ObjectStore):
    """
    Object store backed by one Azure Blob Storage container.

    Create instances with MicrosoftAzureBuilder.

    Example:
        async with MicrosoftAzureBuilder().with_url(url).with_access_key(key).build() as store:
            await store.put("data/file.txt", b"hello")
    """

    def __init__(self, client: AzureClient):
        self.client = client

    def __repr__(self) -> str:
        config = self.client.config
        return f"MicrosoftAzure(account={config.account!r}, container={config.container!r})"

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self) -> "MicrosoftAzure":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def put(self, location: str, data: bytes) -> None:
        response = await self.client.put_request(location, data)
        await response.aclose()

    async def put_multipart(self, location: str) -> Tuple[str, CloudMultiPartUpload]:
        inner = AzureMultiPartUpload(self.client, location)
        # Block uploads have no server-side upload id
        return "", CloudMultiPartUpload(inner, DEFAULT_MAX_CONCURRENCY)

    async def abort_multipart(self, location: str, multipart_id: str) -> None:
        # Uncommitted blocks can't be deleted; the service drops them after 7 days
        logger.debug(f"Abandoning multipart upload for {location}")

    async def get(self, location: str) -> GetResult:
        response = await self.client.get_request(location)
        return GetResult(response.aiter_raw(), response.aclose)

    async def get_range(self, location: str, start: int, end: int) -> bytes:
        response = await self.client.get_request(location, byte_range=(start, end))
        async with GetResult(response.aiter_raw(), response.aclose) as result:
            return await result.bytes()

    async def head(self, location: str) -> ObjectMeta:
        """
        Read blob properties from a HEAD response.

        Raises:
            NotFoundError: If the blob doesn't exist
            ResponseHeaderError: If Last-Modified or Content-Length is missing
                or malformed
        """
        response = await self.client.get_request(location, head=True)
        headers = response.headers

        last_modified = headers.get("last-modified")
        if last_modified is None:
            raise MissingLastModifiedError()
        try:
            modified = parse_http_date(last_modified)
        except ValueError as e:
            raise InvalidLastModifiedError(last_modified, str(e)) from e

        content_length = headers.get("content-length")
        if content_length is None:
            raise MissingContentLengthError()
        if not (content_length.isascii() and content_length.isdigit()):
            raise InvalidContentLengthError(content_length)

        return ObjectMeta(location=location, last_modified=modified, size=int(content_length))

    async def delete(self, location: str) -> None:
        await self.client.delete_request(location)

    def list(self, prefix: Optional[str] = None) -> AsyncIterator[ObjectMeta]:
        return self._list(prefix)

    async def _list(self, prefix: Optional[str]) -> AsyncIterator[ObjectMeta]:
        async for page in self.client.list_paginated(prefix, delimiter=False):
            for meta in page.objects:
                yield meta

    async def list_with_delimiter(self, prefix: Optional[str] = None) -> ListResult:
        common_prefixes = set()
        objects = []

        async for page in self.client.list_paginated(prefix, delimiter=True):
            common_prefixes.update(page.common_prefixes)
            objects.extend(page.objects)

        return ListResult(objects=objects, common_prefixes=sorted(common_prefixes))

    async def copy(self, source: str, destination: str) -> None:
        await self.client.copy_request(source, destination, overwrite=True)

    async def copy_if_not_exists(self, source: str, destination: str) -> None:
        await self.client.copy_request(source, destination, overwrite=False)
