"""Object store interface and provider implementations."""

from .interface import GetResult, ListResult, ObjectMeta, ObjectStore

__all__ = ["GetResult", "ListResult", "ObjectMeta", "ObjectStore"]
