"""
Configuration management for azblobstore.

Defines the closed set of option keys with their aliases, the immutable
configuration models, and the loaders that turn environment variables and
option files into key-value pairs.
"""

import os
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from azblobstore.core.exceptions import ConfigurationError, UnknownConfigurationKeyError
from azblobstore.core.retry import RetryConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "AZURE_"
ALLOW_HTTP_ENV = "AZURE_ALLOW_HTTP"

TRUTHY_VALUES = ("1", "true", "on", "yes", "y")


def str_is_truthy(value: str) -> bool:
    """Interpret a configuration string as a boolean flag."""
    return value.strip().lower() in TRUTHY_VALUES


class ConfigKey(str, Enum):
    """
    Configuration keys understood by MicrosoftAzureBuilder.

    The value of each member is its canonical name. Every accepted spelling
    is listed in ``_KEY_ALIASES``.
    """
    ACCOUNT_NAME = "azure_storage_account_name"
    ACCESS_KEY = "azure_storage_account_key"
    CLIENT_ID = "azure_storage_client_id"
    CLIENT_SECRET = "azure_storage_client_secret"
    AUTHORITY_ID = "azure_storage_tenant_id"
    SAS_KEY = "azure_storage_sas_key"
    TOKEN = "azure_storage_token"
    USE_EMULATOR = "azure_storage_use_emulator"

    @classmethod
    def parse(cls, key: Union["ConfigKey", str]) -> "ConfigKey":
        """
        Resolve an option name to its key.

        Matching is exact; callers lower-case environment names themselves.

        Raises:
            UnknownConfigurationKeyError: If the name matches no alias
        """
        if isinstance(key, ConfigKey):
            return key
        try:
            return _KEY_ALIASES[key]
        except KeyError:
            raise UnknownConfigurationKeyError(key) from None

    @property
    def aliases(self) -> Tuple[str, ...]:
        return tuple(alias for alias, k in _KEY_ALIASES.items() if k is self)


_KEY_ALIASES: Dict[str, ConfigKey] = {
    "azure_storage_account_name": ConfigKey.ACCOUNT_NAME,
    "account_name": ConfigKey.ACCOUNT_NAME,

    "azure_storage_account_key": ConfigKey.ACCESS_KEY,
    "azure_storage_access_key": ConfigKey.ACCESS_KEY,
    "azure_storage_master_key": ConfigKey.ACCESS_KEY,
    "master_key": ConfigKey.ACCESS_KEY,
    "account_key": ConfigKey.ACCESS_KEY,
    "access_key": ConfigKey.ACCESS_KEY,

    "azure_storage_client_id": ConfigKey.CLIENT_ID,
    "azure_client_id": ConfigKey.CLIENT_ID,
    "client_id": ConfigKey.CLIENT_ID,

    "azure_storage_client_secret": ConfigKey.CLIENT_SECRET,
    "azure_client_secret": ConfigKey.CLIENT_SECRET,
    "client_secret": ConfigKey.CLIENT_SECRET,

    "azure_storage_tenant_id": ConfigKey.AUTHORITY_ID,
    "azure_storage_authority_id": ConfigKey.AUTHORITY_ID,
    "azure_tenant_id": ConfigKey.AUTHORITY_ID,
    "azure_authority_id": ConfigKey.AUTHORITY_ID,
    "tenant_id": ConfigKey.AUTHORITY_ID,
    "authority_id": ConfigKey.AUTHORITY_ID,

    "azure_storage_sas_key": ConfigKey.SAS_KEY,
    "azure_storage_sas_token": ConfigKey.SAS_KEY,
    "sas_key": ConfigKey.SAS_KEY,
    "sas_token": ConfigKey.SAS_KEY,

    "azure_storage_token": ConfigKey.TOKEN,
    "bearer_token": ConfigKey.TOKEN,
    "token": ConfigKey.TOKEN,

    "azure_storage_use_emulator": ConfigKey.USE_EMULATOR,
    "object_store_use_emulator": ConfigKey.USE_EMULATOR,
    "use_emulator": ConfigKey.USE_EMULATOR,
}


class ClientOptions(BaseModel):
    """HTTP client configuration."""
    allow_http: bool = False
    proxy_url: Optional[str] = None
    timeout: float = Field(default=30.0, gt=0.0, description="Request timeout in seconds")
    connect_timeout: float = Field(default=5.0, gt=0.0, description="Connect timeout in seconds")
    user_agent: str = "azblobstore/0.1.0"
    default_headers: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def with_allow_http(self, allow_http: bool) -> "ClientOptions":
        return self.model_copy(update={"allow_http": allow_http})

    def with_proxy_url(self, proxy_url: str) -> "ClientOptions":
        return self.model_copy(update={"proxy_url": proxy_url})


class AzureConfig(BaseModel):
    """
    Resolved configuration for one container.

    Produced only by MicrosoftAzureBuilder.build_config() and never
    mutated afterwards; safe to share between concurrent requests.
    """

    account: str = Field(description="Storage account name")
    container: str = Field(description="Container name")
    is_emulator: bool = False
    service: str = Field(description="Blob service endpoint URL")
    # One of the credential dataclasses from azblobstore.auth.credentials
    credentials: Any
    retry_config: RetryConfig = Field(default_factory=RetryConfig)
    client_options: ClientOptions = Field(default_factory=ClientOptions)

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @field_validator("account", "container")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be empty")
        return v

    def container_url(self) -> str:
        """Base URL of the container; the emulator prefixes the account name."""
        if self.is_emulator:
            return f"{self.service}/{self.account}/{self.container}"
        return f"{self.service}/{self.container}"


def options_from_env(
    environ: Optional[Mapping[str, str]] = None
) -> Tuple[List[Tuple[ConfigKey, str]], Optional[bool]]:
    """
    Collect builder options from environment variables.

    Variables starting with ``AZURE_`` are lower-cased and matched against
    the key aliases; variables that match no alias are skipped.

    Args:
        environ: Environment snapshot (defaults to os.environ)

    Returns:
        Tuple of (ordered key-value options, allow_http override or None)
    """
    if environ is None:
        environ = os.environ

    options: List[Tuple[ConfigKey, str]] = []
    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        try:
            options.append((ConfigKey.parse(name.lower()), value))
        except UnknownConfigurationKeyError:
            continue

    allow_http = None
    if (text := environ.get(ALLOW_HTTP_ENV)) is not None:
        allow_http = str_is_truthy(text)

    if options:
        logger.info(f"Collected {len(options)} options from environment variables")
    return options, allow_http


def load_options_file(file_path: Union[str, Path]) -> Dict[str, str]:
    """
    Load a flat mapping of option keys from a YAML or JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigurationError: If the format is unsupported or not a flat mapping
    """
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    with open(path, 'r') as f:
        if path.suffix in ['.yaml', '.yml']:
            data = yaml.safe_load(f) or {}
        elif path.suffix == '.json':
            data = json.load(f)
        else:
            raise ConfigurationError(f"Unsupported config file format: {path.suffix}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file must contain a mapping: {file_path}")

    options: Dict[str, str] = {}
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            raise ConfigurationError(f"Option '{key}' must be a scalar value")
        if isinstance(value, bool):
            value = str(value).lower()
        options[str(key)] = str(value)

    logger.info(f"Loaded {len(options)} options from file: {file_path}")
    return options
