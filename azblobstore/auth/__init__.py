"""
azblobstore Authentication Module.

Credential strategies for Azure Blob Storage: SharedKey, bearer token,
service principal (OAuth client secret) and SAS.
"""

from azblobstore.auth.exceptions import (
    CredentialError,
    InvalidAccountKeyError,
    TokenRequestError,
)
from azblobstore.auth.credentials import (
    EMULATOR_ACCOUNT,
    EMULATOR_ACCOUNT_KEY,
    BearerTokenCredential,
    ClientSecretCredential,
    CredentialStrategy,
    SASTokenCredential,
    SharedKeyCredential,
    emulator_credentials,
    select_credentials,
    split_sas,
)
from azblobstore.auth.oauth import AuthorityHosts, ClientSecretOAuthProvider
from azblobstore.auth.sharedkey import (
    build_canonical_string,
    compute_signature,
    sign_request,
)

__all__ = [
    # Exceptions
    "CredentialError",
    "InvalidAccountKeyError",
    "TokenRequestError",
    # Strategies
    "EMULATOR_ACCOUNT",
    "EMULATOR_ACCOUNT_KEY",
    "BearerTokenCredential",
    "ClientSecretCredential",
    "CredentialStrategy",
    "SASTokenCredential",
    "SharedKeyCredential",
    "emulator_credentials",
    "select_credentials",
    "split_sas",
    # OAuth
    "AuthorityHosts",
    "ClientSecretOAuthProvider",
    # SharedKey
    "build_canonical_string",
    "compute_signature",
    "sign_request",
]
