"""
Block-based multipart upload for Blob Storage.

Each part is staged as an uncommitted block (Put Block) and the blob is
assembled by committing the ordered block list (Put Block List). Blocks
that are never committed are discarded by the service after seven days,
so an abandoned upload needs no cleanup.
"""

import logging
from typing import List

from azblobstore.core.multipart import MultiPartUploadImpl, UploadPart

from .client import AzureClient
from .models import BlockId, BlockList

logger = logging.getLogger(__name__)


class AzureMultiPartUpload(MultiPartUploadImpl):
    """Stages blocks for one blob and commits them as a block list."""

    def __init__(self, client: AzureClient, location: str):
        self.client = client
        self.location = location

    async def put_multipart_part(self, data: bytes, part_idx: int) -> UploadPart:
        block_id = BlockId.from_part_index(part_idx)

        response = await self.client.put_request(
            self.location,
            data,
            is_block_op=True,
            params=[("comp", "block"), ("blockid", block_id.encode())],
        )
        await response.aclose()

        logger.debug(f"Staged block {part_idx} ({len(data)} bytes) for {self.location}")
        return UploadPart(content_id=block_id.content_id)

    async def complete(self, completed_parts: List[UploadPart]) -> None:
        block_list = BlockList(
            blocks=[BlockId.from_content_id(part.content_id) for part in completed_parts]
        )

        response = await self.client.put_request(
            self.location,
            block_list.to_xml(),
            is_block_op=True,
            params=[("comp", "blocklist")],
        )
        await response.aclose()

        logger.info(f"Committed {len(completed_parts)} blocks to {self.location}")
