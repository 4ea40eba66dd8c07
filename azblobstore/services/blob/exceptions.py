"""
Blob Storage request and response exceptions.
"""

from typing import Optional

from azblobstore.core.exceptions import ObjectStoreError


class RequestError(ObjectStoreError):
    """Raised when the service answers with an unexpected status or is unreachable."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: str = "RequestFailed",
        path: Optional[str] = None
    ):
        self.status_code = status_code
        self.path = path
        super().__init__(message, error_code)


class NotFoundError(RequestError):
    """Raised when a blob does not exist."""

    def __init__(self, path: str, error_code: str = "BlobNotFound"):
        super().__init__(f"Object at location {path} not found", 404, error_code, path)


class AlreadyExistsError(RequestError):
    """Raised when a conditional write finds the target already present."""

    def __init__(self, path: str, error_code: str = "BlobAlreadyExists"):
        super().__init__(f"Object at location {path} already exists", 409, error_code, path)


class PreconditionError(RequestError):
    """Raised when a request precondition is not met."""

    def __init__(self, path: str, error_code: str = "ConditionNotMet"):
        super().__init__(f"Precondition failed for object at location {path}", 412, error_code, path)


class ResponseHeaderError(ObjectStoreError):
    """Base exception for missing or malformed response headers."""


class MissingLastModifiedError(ResponseHeaderError):
    """Raised when a response has no Last-Modified header."""

    def __init__(self):
        super().__init__("Last-Modified Header missing from response", "MissingLastModified")


class MissingContentLengthError(ResponseHeaderError):
    """Raised when a response has no Content-Length header."""

    def __init__(self):
        super().__init__("Content-Length Header missing from response", "MissingContentLength")


class InvalidLastModifiedError(ResponseHeaderError):
    """Raised when Last-Modified does not match the RFC 1123 format."""

    def __init__(self, last_modified: str, reason: str = ""):
        self.last_modified = last_modified
        super().__init__(
            f"Invalid last modified '{last_modified}': {reason}",
            "InvalidLastModified"
        )


class InvalidContentLengthError(ResponseHeaderError):
    """Raised when Content-Length is not an unsigned integer."""

    def __init__(self, content_length: str):
        self.content_length = content_length
        super().__init__(
            f"Invalid content length '{content_length}'",
            "InvalidContentLength"
        )


class InvalidListResponseError(ObjectStoreError):
    """Raised when a list response is not valid EnumerationResults XML."""

    def __init__(self, reason: str):
        super().__init__(f"Invalid list response: {reason}", "InvalidListResponse")
