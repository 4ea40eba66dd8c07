"""
Object Store Interface

Defines the generic object store operations and result types that
provider adapters implement.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Tuple

from pydantic import BaseModel, Field

from azblobstore.core.multipart import CloudMultiPartUpload


class ObjectMeta(BaseModel):
    """Metadata of a single object."""

    location: str = Field(description="Object path within the container")
    last_modified: datetime = Field(description="Last modified timestamp (UTC)")
    size: int = Field(ge=0, description="Object size in bytes")


class ListResult(BaseModel):
    """Result of a listing with a delimiter."""

    objects: List[ObjectMeta] = Field(default_factory=list)
    common_prefixes: List[str] = Field(default_factory=list)


class GetResult:
    """
    Streamed object content.

    The stream is closed once fully consumed, or explicitly with aclose().
    """

    def __init__(self, stream: AsyncIterator[bytes], close: Callable[[], Awaitable[None]]):
        self._stream = stream
        self._close = close
        self._closed = False

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._stream:
                yield chunk
        finally:
            await self.aclose()

    async def bytes(self) -> bytes:
        """Read the remaining content into memory."""
        chunks = [chunk async for chunk in self]
        return b"".join(chunks)

    async def aclose(self) -> None:
        if not self._closed:
            self._closed = True
            await self._close()

    async def __aenter__(self) -> "GetResult":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class ObjectStore(ABC):
    """
    Abstract base class for object stores.

    Locations are '/'-separated paths relative to the store root. All
    methods are coroutines except list(), which returns an async iterator.
    """

    @abstractmethod
    async def put(self, location: str, data: bytes) -> None:
        """Write an object in a single request, replacing any existing one."""
        ...

    @abstractmethod
    async def put_multipart(self, location: str) -> Tuple[str, CloudMultiPartUpload]:
        """
        Start a multipart upload.

        Returns:
            Tuple of (multipart id, writable sink); closing the sink
            completes the upload
        """
        ...

    @abstractmethod
    async def abort_multipart(self, location: str, multipart_id: str) -> None:
        """Abandon a multipart upload."""
        ...

    @abstractmethod
    async def get(self, location: str) -> GetResult:
        """Stream an object's content."""
        ...

    @abstractmethod
    async def get_range(self, location: str, start: int, end: int) -> bytes:
        """Read bytes [start, end) of an object."""
        ...

    @abstractmethod
    async def head(self, location: str) -> ObjectMeta:
        """Return an object's metadata without its content."""
        ...

    @abstractmethod
    async def delete(self, location: str) -> None:
        """Delete an object; a missing object is an error."""
        ...

    @abstractmethod
    def list(self, prefix: Optional[str] = None) -> AsyncIterator[ObjectMeta]:
        """Iterate over all objects under a prefix, recursively."""
        ...

    @abstractmethod
    async def list_with_delimiter(self, prefix: Optional[str] = None) -> ListResult:
        """List objects and common prefixes directly under a prefix."""
        ...

    @abstractmethod
    async def copy(self, source: str, destination: str) -> None:
        """Copy an object, replacing the destination if it exists."""
        ...

    @abstractmethod
    async def copy_if_not_exists(self, source: str, destination: str) -> None:
        """Copy an object only if the destination doesn't exist."""
        ...
