"""
Authentication exceptions for azblobstore.
"""

from typing import Optional

from azblobstore.core.exceptions import ObjectStoreError


class CredentialError(ObjectStoreError):
    """Base exception for errors while authorizing a request."""

    def __init__(self, message: str, error_code: str = "CredentialError"):
        super().__init__(message, error_code)


class InvalidAccountKeyError(CredentialError):
    """Raised when a shared key is not valid base64."""

    def __init__(self, message: str = "Account key must be base64-encoded"):
        super().__init__(message, "InvalidAccountKey")


class TokenRequestError(CredentialError):
    """Raised when the authority host refuses to issue an access token."""

    def __init__(
        self,
        status_code: Optional[int],
        error: str = "token_request_failed",
        error_description: Optional[str] = None
    ):
        self.status_code = status_code
        self.error = error
        self.error_description = error_description
        message = f"Failed to acquire access token ({status_code}): {error}"
        if error_description:
            message += f" - {error_description}"
        super().__init__(message, "TokenRequestFailed")
