"""
Builder for Azure Blob Storage object stores.

Options can be set with explicit setters, key-value pairs, environment
variables, an option file or a connection URL. Nothing is validated until
build_config(), which either returns a complete AzureConfig or raises.
"""

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Mapping, Optional, Tuple, Union

import httpx
from pydantic import AnyUrl, TypeAdapter, ValidationError

from azblobstore.auth.credentials import (
    EMULATOR_ACCOUNT,
    emulator_credentials,
    select_credentials,
)
from azblobstore.core.config_manager import (
    AzureConfig,
    ClientOptions,
    ConfigKey,
    load_options_file,
    options_from_env,
    str_is_truthy,
)
from azblobstore.core.exceptions import (
    MissingAccountError,
    MissingContainerNameError,
    UnableToParseEmulatorUrlError,
    UnableToParseUrlError,
)
from azblobstore.core.location import parse_url
from azblobstore.core.retry import RetryConfig

if TYPE_CHECKING:
    from azblobstore.services.blob.store import MicrosoftAzure

logger = logging.getLogger(__name__)

EMULATOR_URL_ENV = "AZURITE_BLOB_STORAGE_URL"
EMULATOR_DEFAULT_URL = "http://127.0.0.1:10000"

_url_adapter = TypeAdapter(AnyUrl)


def _parse_service_url(url: str) -> str:
    """Validate a URL and return it without a trailing slash."""
    return str(_url_adapter.validate_python(url)).rstrip("/")


def url_from_env(
    env_name: str,
    default_url: str,
    environ: Optional[Mapping[str, str]] = None
) -> str:
    """
    Read a service URL from an environment variable, falling back to a default.

    Raises:
        UnableToParseEmulatorUrlError: If the variable is set to an invalid URL
    """
    if environ is None:
        environ = os.environ

    env_value = environ.get(env_name)
    if env_value is None:
        return _parse_service_url(default_url)

    try:
        return _parse_service_url(env_value)
    except ValidationError as e:
        reason = e.errors()[0]["msg"] if e.errors() else str(e)
        raise UnableToParseEmulatorUrlError(env_name, env_value, reason) from e


class MicrosoftAzureBuilder:
    """
    Configure and build a MicrosoftAzure store.

    Setters return the builder so calls can be chained; a later call for the
    same field replaces the earlier value.

    Example:
        store = (
            MicrosoftAzureBuilder.from_env()
            .with_url("abfss://container@account.dfs.core.windows.net/")
            .build()
        )
    """

    def __init__(self):
        self.account_name: Optional[str] = None
        self.container_name: Optional[str] = None
        self.access_key: Optional[str] = None
        self.bearer_token: Optional[str] = None
        self.client_id: Optional[str] = None
        self.client_secret: Optional[str] = None
        self.tenant_id: Optional[str] = None
        self.authority_host: Optional[str] = None
        self.sas_query_pairs: Optional[List[Tuple[str, str]]] = None
        self.sas_key: Optional[str] = None
        self.url: Optional[str] = None
        self.use_emulator = False
        self.retry_config = RetryConfig()
        self.client_options = ClientOptions()
        # Environment consulted for the emulator endpoint (os.environ if None)
        self.environ: Optional[Mapping[str, str]] = None

    def __repr__(self) -> str:
        return (
            f"MicrosoftAzureBuilder(account_name={self.account_name!r}, "
            f"container_name={self.container_name!r}, url={self.url!r}, "
            f"use_emulator={self.use_emulator})"
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MicrosoftAzureBuilder":
        """
        Create a builder pre-populated from environment variables.

        Recognized variables include AZURE_STORAGE_ACCOUNT_NAME,
        AZURE_STORAGE_ACCOUNT_KEY, AZURE_STORAGE_CLIENT_ID,
        AZURE_STORAGE_CLIENT_SECRET, AZURE_STORAGE_TENANT_ID and
        AZURE_ALLOW_HTTP.

        Args:
            environ: Environment snapshot (defaults to os.environ)
        """
        builder = cls()
        builder.environ = environ
        options, allow_http = options_from_env(environ)
        builder.with_options(options)
        if allow_http is not None:
            builder.with_allow_http(allow_http)
        return builder

    def with_url(self, url: str) -> "MicrosoftAzureBuilder":
        """
        Set a connection URL.

        Account and container names derived from the URL override any set
        on the builder. The URL is parsed by build_config().
        """
        self.url = url
        return self

    def with_option(self, key: Union[ConfigKey, str], value: str) -> "MicrosoftAzureBuilder":
        """
        Set an option by key or alias.

        Raises:
            UnknownConfigurationKeyError: If the key is not recognized
        """
        config_key = ConfigKey.parse(key)
        if config_key is ConfigKey.ACCOUNT_NAME:
            self.account_name = value
        elif config_key is ConfigKey.ACCESS_KEY:
            self.access_key = value
        elif config_key is ConfigKey.CLIENT_ID:
            self.client_id = value
        elif config_key is ConfigKey.CLIENT_SECRET:
            self.client_secret = value
        elif config_key is ConfigKey.AUTHORITY_ID:
            self.tenant_id = value
        elif config_key is ConfigKey.SAS_KEY:
            self.sas_key = value
        elif config_key is ConfigKey.TOKEN:
            self.bearer_token = value
        elif config_key is ConfigKey.USE_EMULATOR:
            self.use_emulator = str_is_truthy(value)
        return self

    def with_options(
        self,
        options: Union[Mapping[str, str], Iterable[Tuple[Union[ConfigKey, str], str]]]
    ) -> "MicrosoftAzureBuilder":
        """Set several options, in order."""
        items = options.items() if isinstance(options, Mapping) else options
        for key, value in items:
            self.with_option(key, value)
        return self

    def with_config_file(self, file_path: Union[str, Path]) -> "MicrosoftAzureBuilder":
        """Set options from a flat YAML or JSON file."""
        return self.with_options(load_options_file(file_path))

    def with_account(self, account: str) -> "MicrosoftAzureBuilder":
        self.account_name = account
        return self

    def with_container_name(self, container_name: str) -> "MicrosoftAzureBuilder":
        self.container_name = container_name
        return self

    def with_access_key(self, access_key: str) -> "MicrosoftAzureBuilder":
        self.access_key = access_key
        return self

    def with_bearer_token_authorization(self, bearer_token: str) -> "MicrosoftAzureBuilder":
        self.bearer_token = bearer_token
        return self

    def with_client_secret_authorization(
        self,
        client_id: str,
        client_secret: str,
        tenant_id: str
    ) -> "MicrosoftAzureBuilder":
        self.client_id = client_id
        self.client_secret = client_secret
        self.tenant_id = tenant_id
        return self

    def with_sas_authorization(
        self,
        query_pairs: Iterable[Tuple[str, str]]
    ) -> "MicrosoftAzureBuilder":
        """Set SAS query pairs appended to every request URL."""
        self.sas_query_pairs = [(k, v) for k, v in query_pairs]
        return self

    def with_use_emulator(self, use_emulator: bool) -> "MicrosoftAzureBuilder":
        self.use_emulator = use_emulator
        return self

    def with_allow_http(self, allow_http: bool) -> "MicrosoftAzureBuilder":
        self.client_options = self.client_options.with_allow_http(allow_http)
        return self

    def with_authority_host(self, authority_host: str) -> "MicrosoftAzureBuilder":
        """Set the OAuth authority host, see AuthorityHosts for the known clouds."""
        self.authority_host = authority_host
        return self

    def with_retry(self, retry_config: RetryConfig) -> "MicrosoftAzureBuilder":
        self.retry_config = retry_config
        return self

    def with_proxy_url(self, proxy_url: str) -> "MicrosoftAzureBuilder":
        self.client_options = self.client_options.with_proxy_url(proxy_url)
        return self

    def with_client_options(self, options: ClientOptions) -> "MicrosoftAzureBuilder":
        """Replace the client options, including allow_http and proxy_url."""
        self.client_options = options
        return self

    def build_config(self) -> AzureConfig:
        """
        Validate the options and resolve them into a configuration.

        Raises:
            ConfigurationError: If the URL is invalid, the container or
                account is missing, or no credentials were supplied
        """
        account_name = self.account_name
        container_name = self.container_name

        if self.url is not None:
            location = parse_url(self.url)
            if location.account is not None:
                account_name = location.account
            if location.container is not None:
                container_name = location.container

        if not container_name:
            raise MissingContainerNameError()

        client_options = self.client_options
        if self.use_emulator:
            account = account_name or EMULATOR_ACCOUNT
            service = url_from_env(EMULATOR_URL_ENV, EMULATOR_DEFAULT_URL, self.environ)
            credentials = emulator_credentials(self.access_key)
            client_options = client_options.with_allow_http(True)
        else:
            if not account_name:
                raise MissingAccountError()
            account = account_name
            account_url = f"https://{account_name}.blob.core.windows.net"
            try:
                service = _parse_service_url(account_url)
            except ValidationError as e:
                raise UnableToParseUrlError(account_url, str(e.errors()[0]["msg"])) from e
            credentials = select_credentials(
                bearer_token=self.bearer_token,
                access_key=self.access_key,
                client_id=self.client_id,
                client_secret=self.client_secret,
                tenant_id=self.tenant_id,
                authority_host=self.authority_host,
                sas_query_pairs=self.sas_query_pairs,
                sas_key=self.sas_key,
            )

        config = AzureConfig(
            account=account,
            container=container_name,
            is_emulator=self.use_emulator,
            service=service,
            credentials=credentials,
            retry_config=self.retry_config,
            client_options=client_options,
        )
        logger.info(
            f"Configured container '{config.container}' in account '{config.account}' "
            f"at {config.service}"
        )
        return config

    def build(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> "MicrosoftAzure":
        """
        Build a MicrosoftAzure store.

        Args:
            transport: Optional httpx transport for the underlying client

        Returns:
            MicrosoftAzure store
        """
        from azblobstore.services.blob.client import AzureClient
        from azblobstore.services.blob.store import MicrosoftAzure

        return MicrosoftAzure(AzureClient(self.build_config(), transport))
