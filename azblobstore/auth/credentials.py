"""
Credential strategies and their selection.

Exactly one strategy authorizes every request made through a store. The
strategy is chosen once, at build time, from whatever options were supplied.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union
from urllib.parse import unquote

from azblobstore.core.exceptions import (
    DecodeSasKeyError,
    MissingCredentialsError,
    MissingSasComponentError,
)

logger = logging.getLogger(__name__)

# Well-known account and key of Azurite and the legacy storage emulator.
# https://docs.microsoft.com/azure/storage/common/storage-use-azurite#well-known-storage-account-and-key
EMULATOR_ACCOUNT = "devstoreaccount1"
EMULATOR_ACCOUNT_KEY = (
    "Eby8vdM02xNOcqFlqUwJPLlmEtlCDXJ1OUzFT50uSRZ6IFsuFq2UVErCz4I6tq/K1SZFPTOtr/KBHBeksoGMGw=="
)


@dataclass(frozen=True)
class SharedKeyCredential:
    """Base64-encoded account key used to sign requests."""

    account_key: str = field(repr=False)


@dataclass(frozen=True)
class BearerTokenCredential:
    """Static OAuth bearer token sent as-is."""

    token: str = field(repr=False)


@dataclass(frozen=True)
class ClientSecretCredential:
    """Service principal used to obtain OAuth tokens."""

    client_id: str
    client_secret: str = field(repr=False)
    tenant_id: str
    authority_host: Optional[str] = None


@dataclass(frozen=True)
class SASTokenCredential:
    """Shared access signature as ordered query pairs."""

    query_pairs: Tuple[Tuple[str, str], ...] = field(repr=False)


CredentialStrategy = Union[
    SharedKeyCredential,
    BearerTokenCredential,
    ClientSecretCredential,
    SASTokenCredential,
]


def split_sas(sas: str) -> List[Tuple[str, str]]:
    """
    Split a percent-encoded SAS string into ordered key-value pairs.

    Args:
        sas: SAS as copied from the portal or storage explorer, with or
            without a leading '?'

    Returns:
        List of (key, value) tuples in input order

    Raises:
        DecodeSasKeyError: If the decoded bytes are not valid UTF-8
        MissingSasComponentError: If a segment has no '='
    """
    try:
        decoded = unquote(sas, errors="strict")
    except UnicodeDecodeError as e:
        raise DecodeSasKeyError(str(e)) from e

    pairs: List[Tuple[str, str]] = []
    for segment in decoded.lstrip("?").split("&"):
        segment = segment.strip()
        if not segment:
            continue
        key, sep, value = segment.partition("=")
        if not sep:
            raise MissingSasComponentError(segment)
        pairs.append((key, value))
    return pairs


def select_credentials(
    *,
    bearer_token: Optional[str] = None,
    access_key: Optional[str] = None,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
    tenant_id: Optional[str] = None,
    authority_host: Optional[str] = None,
    sas_query_pairs: Optional[List[Tuple[str, str]]] = None,
    sas_key: Optional[str] = None,
) -> CredentialStrategy:
    """
    Pick the credential strategy for a non-emulator store.

    Precedence when several options are present:
    bearer token > access key > client id + secret + tenant id (all three
    together) > SAS query pairs > SAS key string.

    Raises:
        MissingCredentialsError: If none of the options is usable
        DecodeSasKeyError, MissingSasComponentError: If the SAS key is malformed
    """
    if bearer_token is not None:
        credential: CredentialStrategy = BearerTokenCredential(bearer_token)
    elif access_key is not None:
        credential = SharedKeyCredential(access_key)
    elif client_id is not None and client_secret is not None and tenant_id is not None:
        credential = ClientSecretCredential(
            client_id=client_id,
            client_secret=client_secret,
            tenant_id=tenant_id,
            authority_host=authority_host,
        )
    elif sas_query_pairs is not None:
        credential = SASTokenCredential(tuple(tuple(p) for p in sas_query_pairs))
    elif sas_key is not None:
        credential = SASTokenCredential(tuple(split_sas(sas_key)))
    else:
        raise MissingCredentialsError()

    logger.debug(f"Selected credential strategy: {type(credential).__name__}")
    return credential


def emulator_credentials(access_key: Optional[str] = None) -> SharedKeyCredential:
    """Shared key for the storage emulator, defaulting to the well-known key."""
    return SharedKeyCredential(access_key if access_key is not None else EMULATOR_ACCOUNT_KEY)
