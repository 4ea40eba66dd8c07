"""
Azure Blob Storage provider.

REST client, block-based multipart uploads and the MicrosoftAzure store.
"""

from .client import AzureClient
from .exceptions import (
    AlreadyExistsError,
    NotFoundError,
    PreconditionError,
    RequestError,
    ResponseHeaderError,
)
from .multipart import AzureMultiPartUpload
from .store import MicrosoftAzure

__all__ = [
    "AzureClient",
    "AzureMultiPartUpload",
    "MicrosoftAzure",
    "AlreadyExistsError",
    "NotFoundError",
    "PreconditionError",
    "RequestError",
    "ResponseHeaderError",
]
