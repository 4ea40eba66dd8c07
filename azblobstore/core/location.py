"""
Connection URL parsing for Azure Blob Storage locations.

Supported URL dialects:

- ``az://<container>/<path>``, ``adl://<container>/<path>``,
  ``azure://<container>/<path>`` (fsspec / custom)
- ``abfs[s]://<container>/<path>`` (fsspec)
- ``abfs[s]://<file_system>@<account>.dfs.core.windows.net/<path>`` (hadoop)
- ``https://<account>.dfs.core.windows.net``
- ``https://<account>.blob.core.windows.net``
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from azblobstore.core.exceptions import (
    UnableToParseUrlError,
    UnknownUrlSchemeError,
    UrlNotRecognisedError,
)

logger = logging.getLogger(__name__)

DFS_HOST_SUFFIX = ".dfs.core.windows.net"
KNOWN_HTTPS_DOMAINS = ("dfs.core.windows.net", "blob.core.windows.net")


@dataclass(frozen=True)
class StorageLocation:
    """Partial configuration derived from a connection URL."""

    account: Optional[str] = None
    container: Optional[str] = None


def parse_url(url: str) -> StorageLocation:
    """
    Parse a connection URL into account and container names.

    Args:
        url: Connection URL in one of the supported dialects

    Returns:
        StorageLocation with the fields the URL determines

    Raises:
        UnableToParseUrlError: If the URL is not syntactically valid
        UrlNotRecognisedError: If the URL shape is not known for its scheme,
            or a simple name contains a dot
        UnknownUrlSchemeError: If the scheme is not supported
    """
    try:
        parsed = urlsplit(url)
        host = parsed.hostname
        username = parsed.username
        # hostname is lower-cased; container names keep their case
        raw_host = parsed.netloc.rpartition("@")[2].partition(":")[0]
    except ValueError as e:
        raise UnableToParseUrlError(url, str(e)) from e

    if not parsed.scheme:
        raise UnableToParseUrlError(url, "relative URL without a base")

    if not host:
        raise UrlNotRecognisedError(url)

    def validate(name: str) -> str:
        # A dotted name is most likely a DNS host, not a container or account
        if not name or "." in name:
            raise UrlNotRecognisedError(url)
        return name

    scheme = parsed.scheme.lower()

    if scheme in ("az", "adl", "azure"):
        location = StorageLocation(container=validate(raw_host))
    elif scheme in ("abfs", "abfss"):
        if not username:
            location = StorageLocation(container=validate(raw_host))
        elif host.endswith(DFS_HOST_SUFFIX):
            account = host[: -len(DFS_HOST_SUFFIX)]
            location = StorageLocation(
                account=validate(account),
                container=validate(username),
            )
        else:
            raise UrlNotRecognisedError(url)
    elif scheme == "https":
        account, _, domain = host.partition(".")
        if domain not in KNOWN_HTTPS_DOMAINS:
            raise UrlNotRecognisedError(url)
        location = StorageLocation(account=validate(account))
    else:
        raise UnknownUrlSchemeError(scheme)

    logger.debug(
        f"Parsed {scheme} url: account={location.account}, container={location.container}"
    )
    return location
