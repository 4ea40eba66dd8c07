"""Core module initialization."""

from .config_manager import AzureConfig, ClientOptions, ConfigKey
from .exceptions import ConfigurationError, ObjectStoreError
from .logging_config import setup_logging, get_logger
from .multipart import CloudMultiPartUpload, MultiPartUploadImpl, UploadPart, UploadState
from .retry import RetryConfig

__all__ = [
    "AzureConfig",
    "ClientOptions",
    "ConfigKey",
    "ConfigurationError",
    "ObjectStoreError",
    "setup_logging",
    "get_logger",
    "CloudMultiPartUpload",
    "MultiPartUploadImpl",
    "UploadPart",
    "UploadState",
    "RetryConfig",
]
