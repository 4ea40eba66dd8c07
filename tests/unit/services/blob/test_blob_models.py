"""
Unit tests for Blob Storage wire models.

Tests list response parsing, block identifiers and block list encoding.
"""

import base64
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from azblobstore.services.blob.exceptions import InvalidListResponseError
from azblobstore.services.blob.models import (
    BlockId,
    BlockList,
    ListPage,
    format_http_date,
    parse_http_date,
)

LIST_RESPONSE = b"""<?xml version="1.0" encoding="utf-8"?>
<EnumerationResults ServiceEndpoint="https://account.blob.core.windows.net/" ContainerName="container">
  <Prefix>data/</Prefix>
  <Delimiter>/</Delimiter>
  <Blobs>
    <Blob>
      <Name>data/a.parquet</Name>
      <Properties>
        <Last-Modified>Wed, 04 Jan 2023 17:48:57 GMT</Last-Modified>
        <Content-Length>1024</Content-Length>
        <BlobType>BlockBlob</BlobType>
      </Properties>
    </Blob>
    <Blob>
      <Name>data/dir</Name>
      <Properties>
        <Last-Modified>Wed, 04 Jan 2023 17:48:57 GMT</Last-Modified>
        <Content-Length>0</Content-Length>
        <ResourceType>directory</ResourceType>
      </Properties>
    </Blob>
    <BlobPrefix>
      <Name>data/year=2023/</Name>
    </BlobPrefix>
  </Blobs>
  <NextMarker>2!84!MDAwMDE0</NextMarker>
</EnumerationResults>
"""


class TestHttpDates:
    """Test RFC 1123 date handling."""

    def test_parse(self):
        parsed = parse_http_date("Wed, 09 Sep 2009 09:20:02 GMT")

        assert parsed == datetime(2009, 9, 9, 9, 20, 2, tzinfo=timezone.utc)

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            parse_http_date("2009-09-09T09:20:02Z")

    def test_format(self):
        value = datetime(2023, 1, 4, 17, 48, 57, tzinfo=timezone.utc)

        assert format_http_date(value) == "Wed, 04 Jan 2023 17:48:57 GMT"


class TestListPage:
    """Test List Blobs response parsing."""

    def test_parse_page(self):
        page = ListPage.from_xml(LIST_RESPONSE)

        assert len(page.objects) == 1
        meta = page.objects[0]
        assert meta.location == "data/a.parquet"
        assert meta.size == 1024
        assert meta.last_modified == datetime(2023, 1, 4, 17, 48, 57, tzinfo=timezone.utc)

    def test_directories_skipped(self):
        """Test hierarchical namespace directory entries are not objects."""
        page = ListPage.from_xml(LIST_RESPONSE)

        assert "data/dir" not in [o.location for o in page.objects]

    def test_common_prefixes_lose_delimiter(self):
        page = ListPage.from_xml(LIST_RESPONSE)

        assert page.common_prefixes == ["data/year=2023"]

    def test_next_marker(self):
        assert ListPage.from_xml(LIST_RESPONSE).next_marker == "2!84!MDAwMDE0"

    def test_last_page(self):
        page = ListPage.from_xml(
            b"<EnumerationResults><Blobs /><NextMarker /></EnumerationResults>"
        )

        assert page.objects == []
        assert page.common_prefixes == []
        assert page.next_marker is None

    def test_malformed_xml(self):
        with pytest.raises(InvalidListResponseError):
            ListPage.from_xml(b"<EnumerationResults>")

    def test_wrong_root(self):
        with pytest.raises(InvalidListResponseError, match="unexpected root"):
            ListPage.from_xml(b"<Error><Code>AuthenticationFailed</Code></Error>")

    def test_invalid_content_length(self):
        xml = b"""<EnumerationResults><Blobs><Blob><Name>a</Name><Properties>
            <Last-Modified>Wed, 04 Jan 2023 17:48:57 GMT</Last-Modified>
            <Content-Length>lots</Content-Length>
        </Properties></Blob></Blobs></EnumerationResults>"""

        with pytest.raises(InvalidListResponseError, match="'a'"):
            ListPage.from_xml(xml)

    def test_blob_without_properties(self):
        xml = b"<EnumerationResults><Blobs><Blob><Name>a</Name></Blob></Blobs></EnumerationResults>"

        with pytest.raises(InvalidListResponseError):
            ListPage.from_xml(xml)


class TestBlockId:
    """Test block identifiers."""

    def test_from_part_index(self):
        """Test indexes are zero-padded to a fixed width."""
        assert BlockId.from_part_index(0).value == b"00000000000000000000"
        assert BlockId.from_part_index(42).content_id == "00000000000000000042"

    def test_fixed_width(self):
        lengths = {len(BlockId.from_part_index(i).value) for i in (0, 9, 10, 12345, 10**19)}

        assert lengths == {20}

    def test_encode(self):
        block_id = BlockId.from_part_index(7)

        assert base64.b64decode(block_id.encode()) == b"00000000000000000007"

    def test_round_trip_content_id(self):
        block_id = BlockId.from_part_index(3)

        assert BlockId.from_content_id(block_id.content_id) == block_id

    def test_negative_index(self):
        with pytest.raises(ValueError):
            BlockId.from_part_index(-1)

    def test_length_limits(self):
        with pytest.raises(ValidationError):
            BlockId(value=b"")
        with pytest.raises(ValidationError):
            BlockId(value=b"x" * 65)


class TestBlockList:
    """Test Put Block List bodies."""

    def test_to_xml(self):
        block_list = BlockList(blocks=[BlockId.from_part_index(0), BlockId.from_part_index(1)])

        body = block_list.to_xml()

        assert body.startswith(b"<?xml")
        root = ET.fromstring(body)
        assert root.tag == "BlockList"
        assert [child.tag for child in root] == ["Uncommitted", "Uncommitted"]
        assert [base64.b64decode(child.text) for child in root] == [
            b"00000000000000000000",
            b"00000000000000000001",
        ]

    def test_preserves_order(self):
        """Test blocks are listed in the given order, not index order."""
        ids = [BlockId.from_part_index(i) for i in (2, 0, 1)]

        root = ET.fromstring(BlockList(blocks=ids).to_xml())

        assert [child.text for child in root] == [block_id.encode() for block_id in ids]

    def test_empty(self):
        root = ET.fromstring(BlockList().to_xml())

        assert list(root) == []
