"""
Blob Storage Models

Pydantic models for object metadata, list results and the block
identifiers of multipart uploads, with their XML wire encodings.
"""

import base64
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from azblobstore.services.interface import ObjectMeta

from .exceptions import InvalidListResponseError

RFC1123_FORMAT = '%a, %d %b %Y %H:%M:%S GMT'

# Width of the zero-padded decimal part index inside a block ID
BLOCK_ID_WIDTH = 20


def parse_http_date(value: str) -> datetime:
    """
    Parse an RFC 1123 timestamp such as 'Wed, 09 Sep 2009 09:20:02 GMT'.

    Raises:
        ValueError: If the value does not match the format
    """
    return datetime.strptime(value, RFC1123_FORMAT).replace(tzinfo=timezone.utc)


def format_http_date(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(RFC1123_FORMAT)


class ListPage(BaseModel):
    """One page of a List Blobs response."""

    objects: List[ObjectMeta] = Field(default_factory=list)
    common_prefixes: List[str] = Field(default_factory=list)
    next_marker: Optional[str] = None

    @classmethod
    def from_xml(cls, xml_data: bytes) -> "ListPage":
        """
        Parse an EnumerationResults document.

        Directory placeholders of hierarchical-namespace accounts are
        skipped; BlobPrefix names lose their trailing delimiter.

        Raises:
            InvalidListResponseError: If the document is malformed
        """
        try:
            root = ET.fromstring(xml_data)
        except ET.ParseError as e:
            raise InvalidListResponseError(str(e)) from e

        if root.tag != "EnumerationResults":
            raise InvalidListResponseError(f"unexpected root element <{root.tag}>")

        objects: List[ObjectMeta] = []
        common_prefixes: List[str] = []

        blobs = root.find("Blobs")
        if blobs is not None:
            for element in blobs:
                if element.tag == "BlobPrefix":
                    name = element.findtext("Name")
                    if name is None:
                        raise InvalidListResponseError("BlobPrefix without Name")
                    common_prefixes.append(name.rstrip("/"))
                elif element.tag == "Blob":
                    meta = _parse_blob_element(element)
                    if meta is not None:
                        objects.append(meta)

        next_marker = root.findtext("NextMarker") or None
        return cls(objects=objects, common_prefixes=common_prefixes, next_marker=next_marker)


def _parse_blob_element(element: ET.Element) -> Optional[ObjectMeta]:
    name = element.findtext("Name")
    properties = element.find("Properties")
    if name is None or properties is None:
        raise InvalidListResponseError("Blob without Name or Properties")

    if properties.findtext("ResourceType") == "directory":
        return None

    last_modified = properties.findtext("Last-Modified")
    content_length = properties.findtext("Content-Length")
    try:
        return ObjectMeta(
            location=name,
            last_modified=parse_http_date(last_modified or ""),
            size=int(content_length or ""),
        )
    except ValueError as e:
        raise InvalidListResponseError(f"invalid properties for blob '{name}': {e}") from e


class BlockId(BaseModel):
    """
    Identifier of one block of a blob being assembled.

    All block IDs of a blob must have the same length, so the part index
    is zero-padded to a fixed width.
    """

    value: bytes

    model_config = ConfigDict(frozen=True)

    @field_validator('value')
    @classmethod
    def validate_length(cls, v: bytes) -> bytes:
        """Block IDs are at most 64 bytes before encoding."""
        if not v or len(v) > 64:
            raise ValueError("Block ID must be between 1 and 64 bytes")
        return v

    @classmethod
    def from_part_index(cls, part_idx: int) -> "BlockId":
        if part_idx < 0:
            raise ValueError(f"Part index must be non-negative, got {part_idx}")
        return cls(value=f"{part_idx:0{BLOCK_ID_WIDTH}d}".encode("ascii"))

    @classmethod
    def from_content_id(cls, content_id: str) -> "BlockId":
        return cls(value=content_id.encode("utf-8"))

    @property
    def content_id(self) -> str:
        return self.value.decode("utf-8")

    def encode(self) -> str:
        """Base64 form used in the blockid query parameter and block lists."""
        return base64.b64encode(self.value).decode("ascii")


class BlockList(BaseModel):
    """Ordered manifest of blocks committed as one blob."""

    blocks: List[BlockId] = Field(default_factory=list)

    def to_xml(self) -> bytes:
        """
        Serialize for Put Block List.

        Blocks are listed as Uncommitted, in order, so only blocks staged
        by this upload are used.
        """
        root = ET.Element("BlockList")
        for block in self.blocks:
            ET.SubElement(root, "Uncommitted").text = block.encode()
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)
