"""
Generic multipart upload driver.

Turns arbitrary write() calls into parts of at least ``min_part_size``
bytes, uploads up to ``max_concurrency`` parts at once through a
provider-specific MultiPartUploadImpl, and finalizes the upload on close.

Lifecycle of one upload::

    OPEN --close()--> COMPLETING --> COMMITTED
      |                    |
      +--part failure------+--> FAILED

There is no rolled-back state: providers without an abort primitive leave
staged parts to expire on their own.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional, Set

from pydantic import BaseModel

from azblobstore.core.exceptions import ObjectStoreError

logger = logging.getLogger(__name__)

MIN_PART_SIZE = 5 * 1024 * 1024
DEFAULT_MAX_CONCURRENCY = 8


class UploadPart(BaseModel):
    """Record of one part accepted by the provider."""

    content_id: str


class UploadState(str, Enum):
    """States of a multipart upload."""
    OPEN = "open"
    COMPLETING = "completing"
    COMMITTED = "committed"
    FAILED = "failed"


class UploadStateError(ObjectStoreError):
    """Raised when an upload is used in a state that doesn't allow it."""

    def __init__(self, state: UploadState, operation: str):
        self.state = state
        super().__init__(
            f"Cannot {operation} a multipart upload in state '{state.value}'",
            "InvalidUploadState"
        )


class MultiPartUploadImpl(ABC):
    """Provider half of a multipart upload."""

    @abstractmethod
    async def put_multipart_part(self, data: bytes, part_idx: int) -> UploadPart:
        """
        Upload one part.

        Calls for the same upload may run concurrently.

        Args:
            data: Part content
            part_idx: Zero-based part index, in submission order

        Returns:
            UploadPart identifying the stored part
        """
        ...

    @abstractmethod
    async def complete(self, completed_parts: List[UploadPart]) -> None:
        """
        Assemble the object from its parts.

        Args:
            completed_parts: Parts in the order they were submitted
        """
        ...


class CloudMultiPartUpload:
    """
    Async writable sink that uploads its content as a multipart upload.

    Example:
        async with CloudMultiPartUpload(impl) as upload:
            await upload.write(b"...")
    """

    def __init__(
        self,
        inner: MultiPartUploadImpl,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        min_part_size: int = MIN_PART_SIZE
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if min_part_size < 1:
            raise ValueError("min_part_size must be at least 1")

        self.inner = inner
        self.max_concurrency = max_concurrency
        self.min_part_size = min_part_size
        self.state = UploadState.OPEN
        self._buffer = bytearray()
        # Indexed by part index, which is also submission order
        self._parts: List[Optional[UploadPart]] = []
        self._tasks: Set[asyncio.Task] = set()

    @property
    def parts_submitted(self) -> int:
        return len(self._parts)

    async def write(self, data: bytes) -> int:
        """
        Buffer data, uploading a part whenever the buffer reaches the
        minimum part size.

        Returns:
            Number of bytes accepted
        """
        self._ensure_state(UploadState.OPEN, "write to")
        self._buffer.extend(data)
        if len(self._buffer) >= self.min_part_size:
            await self._submit_buffer()
        return len(data)

    async def flush(self) -> None:
        """Wait for every in-flight part upload to finish."""
        while self._tasks:
            await self._wait_for_one()

    async def close(self) -> None:
        """
        Upload any buffered data, wait for all parts and complete the upload.

        Closing a committed upload is a no-op.
        """
        if self.state == UploadState.COMMITTED:
            return
        self._ensure_state(UploadState.OPEN, "close")

        if self._buffer:
            await self._submit_buffer()
        await self.flush()

        self.state = UploadState.COMPLETING
        completed = [part for part in self._parts if part is not None]
        logger.debug(f"Completing multipart upload with {len(completed)} parts")
        try:
            await self.inner.complete(completed)
        except BaseException:
            self.state = UploadState.FAILED
            raise
        self.state = UploadState.COMMITTED

    async def abort(self) -> None:
        """Cancel in-flight part uploads and mark the upload failed."""
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        self._buffer.clear()
        if self.state != UploadState.COMMITTED:
            self.state = UploadState.FAILED

    async def __aenter__(self) -> "CloudMultiPartUpload":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            await self.close()
        else:
            await self.abort()

    async def _submit_buffer(self) -> None:
        while len(self._tasks) >= self.max_concurrency:
            await self._wait_for_one()

        data = bytes(self._buffer)
        self._buffer.clear()
        part_idx = len(self._parts)
        self._parts.append(None)
        self._tasks.add(asyncio.create_task(self._upload_part(data, part_idx)))

    async def _upload_part(self, data: bytes, part_idx: int) -> None:
        self._parts[part_idx] = await self.inner.put_multipart_part(data, part_idx)

    async def _wait_for_one(self) -> None:
        done, _ = await asyncio.wait(self._tasks, return_when=asyncio.FIRST_COMPLETED)
        self._tasks -= done
        # Every finished task's exception is retrieved, not just the first
        errors = [
            task.exception()
            for task in done
            if not task.cancelled() and task.exception() is not None
        ]
        if errors:
            for error in errors:
                logger.error(f"Multipart part upload failed: {error}")
            await self.abort()
            raise errors[0]

    def _ensure_state(self, expected: UploadState, operation: str) -> None:
        if self.state != expected:
            raise UploadStateError(self.state, operation)
