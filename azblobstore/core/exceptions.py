"""
Configuration exceptions for azblobstore.

Every failure raised while resolving options, parsing a connection URL or
selecting credentials has its own class so callers can tell a bad URL from
a forgotten field.
"""


class ObjectStoreError(Exception):
    """Base exception for all azblobstore errors."""

    def __init__(self, message: str, error_code: str = "ObjectStoreError"):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class ConfigurationError(ObjectStoreError):
    """Base exception for errors raised while building a store."""

    def __init__(self, message: str, error_code: str = "InvalidConfiguration"):
        super().__init__(message, error_code)


class UnknownConfigurationKeyError(ConfigurationError):
    """Raised when an option key matches no known alias."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(
            f"Configuration key: '{key}' is not known.",
            "UnknownConfigurationKey"
        )


class UnableToParseUrlError(ConfigurationError):
    """Raised when a URL is not syntactically valid."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        message = f"Unable parse source url. Url: {url}"
        if reason:
            message += f", Error: {reason}"
        super().__init__(message, "UnableToParseUrl")


class UnableToParseEmulatorUrlError(ConfigurationError):
    """Raised when the emulator endpoint override is not a valid URL."""

    def __init__(self, env_name: str, env_value: str, reason: str = ""):
        self.env_name = env_name
        self.env_value = env_value
        super().__init__(
            f"Unable parse emulator url {env_name}={env_value}, Error: {reason}",
            "UnableToParseEmulatorUrl"
        )


class UrlNotRecognisedError(ConfigurationError):
    """Raised when a URL does not match any pattern known for its scheme."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(
            f"URL did not match any known pattern for scheme: {url}",
            "UrlNotRecognised"
        )


class UnknownUrlSchemeError(ConfigurationError):
    """Raised when a URL scheme cannot describe a storage location."""

    def __init__(self, scheme: str):
        self.scheme = scheme
        super().__init__(
            f"Unknown url scheme cannot be parsed into storage location: {scheme}",
            "UnknownUrlScheme"
        )


class MissingAccountError(ConfigurationError):
    """Raised when no storage account name was supplied."""

    def __init__(self, message: str = "Account must be specified"):
        super().__init__(message, "MissingAccount")


class MissingContainerNameError(ConfigurationError):
    """Raised when no container name was supplied."""

    def __init__(self, message: str = "Container name must be specified"):
        super().__init__(message, "MissingContainerName")


class MissingCredentialsError(ConfigurationError):
    """Raised when no usable authorization option was supplied."""

    def __init__(self, message: str = "At least one authorization option must be specified"):
        super().__init__(message, "MissingCredentials")


class DecodeSasKeyError(ConfigurationError):
    """Raised when a SAS key does not percent-decode to UTF-8."""

    def __init__(self, reason: str = ""):
        self.reason = reason
        message = "Failed parsing an SAS key"
        if reason:
            message += f": {reason}"
        super().__init__(message, "DecodeSasKey")


class MissingSasComponentError(ConfigurationError):
    """Raised when a SAS segment has no '=' separator."""

    def __init__(self, segment: str):
        self.segment = segment
        super().__init__(
            f"Missing component in SAS query pair: '{segment}'",
            "MissingSasComponent"
        )


class InsecureEndpointError(ConfigurationError):
    """Raised when an http:// endpoint is used without allow_http."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(
            f"HTTP endpoint {url} requires allow_http to be enabled",
            "InsecureEndpoint"
        )
