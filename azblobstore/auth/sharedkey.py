"""
SharedKey signing of Blob Storage requests.

The string-to-sign follows the 2015-04-05 rules, which apply to every
service version this client sends:
https://docs.microsoft.com/en-us/rest/api/storageservices/authorize-with-shared-key
"""

import base64
import binascii
import hashlib
import hmac
from collections import defaultdict
from typing import Dict, List, Mapping
from urllib.parse import unquote, urlsplit

from azblobstore.auth.exceptions import InvalidAccountKeyError

# Standard headers in string-to-sign order. "date" is always empty because
# x-ms-date is sent and signed as a canonicalized header instead.
SIGNED_HEADERS = (
    "content-encoding",
    "content-language",
    "content-length",
    "content-md5",
    "content-type",
    "date",
    "if-modified-since",
    "if-match",
    "if-none-match",
    "if-unmodified-since",
    "range",
)


def sign_request(
    method: str,
    url: str,
    headers: Mapping[str, str],
    account_name: str,
    account_key: str
) -> str:
    """
    Return the SharedKey Authorization header value for a prepared request.

    Every header that takes part in the signature (x-ms-date, x-ms-version,
    Content-Length, Range, If-None-Match, ...) must already be set.
    """
    lowered = {name.lower(): value for name, value in headers.items()}
    string_to_sign = build_canonical_string(method, url, lowered, account_name)
    return f"SharedKey {account_name}:{compute_signature(string_to_sign, account_key)}"


def build_canonical_string(
    method: str,
    url: str,
    headers: Dict[str, str],
    account_name: str
) -> str:
    """
    Build the string-to-sign.

    Args:
        method: HTTP verb
        url: Request URL with its percent-encoded path and query
        headers: Request headers keyed by lower-case name
        account_name: Account whose key signs the request
    """
    lines = [method.upper()]
    for name in SIGNED_HEADERS:
        value = "" if name == "date" else headers.get(name, "")
        # A zero Content-Length is signed as empty since 2015-02-21
        if name == "content-length" and value == "0":
            value = ""
        lines.append(value)
    lines.append(_canonicalized_headers(headers))
    lines.append(_canonicalized_resource(url, account_name))
    return "\n".join(lines)


def _canonicalized_headers(headers: Dict[str, str]) -> str:
    # x-ms-* headers sorted by name, values with whitespace runs collapsed
    return "\n".join(
        f"{name}:{' '.join(headers[name].split())}"
        for name in sorted(headers)
        if name.startswith("x-ms-")
    )


def _canonicalized_resource(url: str, account_name: str) -> str:
    parts = urlsplit(url)
    lines = [f"/{account_name}{parts.path or '/'}"]

    params: Dict[str, List[str]] = defaultdict(list)
    for pair in filter(None, parts.query.split("&")):
        name, sep, value = pair.partition("=")
        if sep:
            params[unquote(name).lower()].append(unquote(value))

    lines.extend(f"{name}:{','.join(sorted(params[name]))}" for name in sorted(params))
    return "\n".join(lines)


def compute_signature(canonical_string: str, account_key: str) -> str:
    """
    Base64 HMAC-SHA256 of the string-to-sign under the decoded account key.

    Raises:
        InvalidAccountKeyError: If the account key is not valid base64
    """
    try:
        key = base64.b64decode(account_key, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidAccountKeyError() from e

    digest = hmac.new(key, canonical_string.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")
