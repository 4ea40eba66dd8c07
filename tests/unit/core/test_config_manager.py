"""
Tests for option keys, configuration models and option loaders.
"""

import json

import pytest
import yaml
from pydantic import ValidationError

from azblobstore.auth.credentials import SharedKeyCredential
from azblobstore.core.config_manager import (
    AzureConfig,
    ClientOptions,
    ConfigKey,
    load_options_file,
    options_from_env,
    str_is_truthy,
)
from azblobstore.core.exceptions import ConfigurationError, UnknownConfigurationKeyError
from azblobstore.core.retry import RetryConfig


ALIASES = {
    ConfigKey.ACCOUNT_NAME: ["azure_storage_account_name", "account_name"],
    ConfigKey.ACCESS_KEY: [
        "azure_storage_account_key",
        "azure_storage_access_key",
        "azure_storage_master_key",
        "master_key",
        "account_key",
        "access_key",
    ],
    ConfigKey.CLIENT_ID: ["azure_storage_client_id", "azure_client_id", "client_id"],
    ConfigKey.CLIENT_SECRET: [
        "azure_storage_client_secret",
        "azure_client_secret",
        "client_secret",
    ],
    ConfigKey.AUTHORITY_ID: [
        "azure_storage_tenant_id",
        "azure_storage_authority_id",
        "azure_tenant_id",
        "azure_authority_id",
        "tenant_id",
        "authority_id",
    ],
    ConfigKey.SAS_KEY: [
        "azure_storage_sas_key",
        "azure_storage_sas_token",
        "sas_key",
        "sas_token",
    ],
    ConfigKey.TOKEN: ["azure_storage_token", "bearer_token", "token"],
    ConfigKey.USE_EMULATOR: [
        "azure_storage_use_emulator",
        "object_store_use_emulator",
        "use_emulator",
    ],
}


class TestConfigKey:
    """Test suite for option key resolution."""

    @pytest.mark.parametrize(
        "alias,expected",
        [(alias, key) for key, aliases in ALIASES.items() for alias in aliases],
    )
    def test_every_alias_resolves(self, alias, expected):
        """Test each documented alias resolves to its key."""
        assert ConfigKey.parse(alias) is expected

    @pytest.mark.parametrize("key", ["invalid-key", "", "AZURE_STORAGE_ACCOUNT_NAME", "account-name"])
    def test_unknown_key(self, key):
        """Test unknown names fail instead of being ignored."""
        with pytest.raises(UnknownConfigurationKeyError) as exc_info:
            ConfigKey.parse(key)

        assert exc_info.value.key == key
        assert "is not known" in str(exc_info.value)

    def test_key_passes_through(self):
        """Test a ConfigKey resolves to itself."""
        assert ConfigKey.parse(ConfigKey.TOKEN) is ConfigKey.TOKEN

    def test_aliases_property(self):
        """Test aliases lists every spelling of a key."""
        assert set(ConfigKey.ACCESS_KEY.aliases) == set(ALIASES[ConfigKey.ACCESS_KEY])
        assert ConfigKey.ACCOUNT_NAME.value in ConfigKey.ACCOUNT_NAME.aliases


class TestStrIsTruthy:
    """Test suite for boolean flag parsing."""

    @pytest.mark.parametrize("value", ["1", "true", "TRUE", "on", "Yes", "y", " true "])
    def test_truthy(self, value):
        assert str_is_truthy(value) is True

    @pytest.mark.parametrize("value", ["0", "false", "off", "no", "", "enabled"])
    def test_falsy(self, value):
        assert str_is_truthy(value) is False


class TestAzureConfig:
    """Test suite for the resolved configuration model."""

    def _config(self, **overrides):
        values = {
            "account": "account",
            "container": "container",
            "service": "https://account.blob.core.windows.net",
            "credentials": SharedKeyCredential("a2V5"),
        }
        values.update(overrides)
        return AzureConfig(**values)

    def test_defaults(self):
        """Test default retry and client options."""
        config = self._config()

        assert config.is_emulator is False
        assert config.retry_config == RetryConfig()
        assert config.client_options.allow_http is False
        assert config.client_options.timeout == 30.0

    def test_container_url(self):
        """Test the container URL of a cloud account."""
        config = self._config()

        assert config.container_url() == "https://account.blob.core.windows.net/container"

    def test_emulator_container_url(self):
        """Test the emulator prefixes paths with the account."""
        config = self._config(
            account="devstoreaccount1",
            service="http://127.0.0.1:10000",
            is_emulator=True,
        )

        assert config.container_url() == "http://127.0.0.1:10000/devstoreaccount1/container"

    def test_empty_container_rejected(self):
        with pytest.raises(ValidationError):
            self._config(container="")

    def test_frozen(self):
        """Test the configuration can't be mutated."""
        config = self._config()

        with pytest.raises(ValidationError):
            config.account = "other"


class TestClientOptions:
    """Test suite for HTTP client options."""

    def test_with_allow_http_returns_copy(self):
        options = ClientOptions()
        updated = options.with_allow_http(True)

        assert updated.allow_http is True
        assert options.allow_http is False

    def test_with_proxy_url(self):
        options = ClientOptions().with_proxy_url("http://proxy:3128")

        assert options.proxy_url == "http://proxy:3128"


class TestOptionsFromEnv:
    """Test suite for environment variable collection."""

    def test_collects_known_variables(self):
        """Test AZURE_ variables are lower-cased and resolved."""
        environ = {
            "AZURE_STORAGE_ACCOUNT_NAME": "account",
            "AZURE_CLIENT_ID": "client",
            "HOME": "/root",
        }

        options, allow_http = options_from_env(environ)

        assert sorted(options) == [
            (ConfigKey.ACCOUNT_NAME, "account"),
            (ConfigKey.CLIENT_ID, "client"),
        ]
        assert allow_http is None

    def test_skips_unknown_azure_variables(self):
        """Test unrelated AZURE_ variables are not an error."""
        options, _ = options_from_env({"AZURE_SUBSCRIPTION_ID": "sub", "AZURE_TOKEN": "t"})

        assert options == []

    @pytest.mark.parametrize("value,expected", [("true", True), ("1", True), ("false", False)])
    def test_allow_http(self, value, expected):
        """Test AZURE_ALLOW_HTTP toggles plain HTTP."""
        _, allow_http = options_from_env({"AZURE_ALLOW_HTTP": value})

        assert allow_http is expected

    def test_defaults_to_process_environment(self, monkeypatch):
        monkeypatch.setenv("AZURE_STORAGE_SAS_TOKEN", "sv=1")

        options, _ = options_from_env()

        assert (ConfigKey.SAS_KEY, "sv=1") in options


class TestLoadOptionsFile:
    """Test suite for option files."""

    def test_yaml_file(self, tmp_path):
        config_file = tmp_path / "store.yaml"
        config_file.write_text(yaml.dump({
            "account_name": "account",
            "use_emulator": True,
            "retries": 3,
        }))

        options = load_options_file(config_file)

        assert options == {"account_name": "account", "use_emulator": "true", "retries": "3"}

    def test_json_file(self, tmp_path):
        config_file = tmp_path / "store.json"
        config_file.write_text(json.dumps({"azure_storage_account_key": "a2V5"}))

        assert load_options_file(str(config_file)) == {"azure_storage_account_key": "a2V5"}

    def test_empty_yaml_file(self, tmp_path):
        config_file = tmp_path / "empty.yml"
        config_file.write_text("")

        assert load_options_file(config_file) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_options_file(tmp_path / "missing.yaml")

    def test_unsupported_format(self, tmp_path):
        config_file = tmp_path / "store.ini"
        config_file.write_text("[azure]\n")

        with pytest.raises(ConfigurationError, match="Unsupported"):
            load_options_file(config_file)

    def test_non_mapping(self, tmp_path):
        config_file = tmp_path / "store.yaml"
        config_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_options_file(config_file)

    def test_nested_value(self, tmp_path):
        config_file = tmp_path / "store.yaml"
        config_file.write_text(yaml.dump({"account_name": {"nested": "x"}}))

        with pytest.raises(ConfigurationError, match="scalar"):
            load_options_file(config_file)
