"""
Storage-layer exceptions.

Repositories and cache adapters raise these instead of leaking driver
exceptions (sqlalchemy, redis) into the service layer.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class StorageError(Exception):
    """Base class for persistence failures."""

    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class DuplicateKeyError(StorageError):
    """Raised when an insert violates a uniqueness constraint."""

    def __init__(self, message: str, constraint: Optional[str] = None):
        super().__init__(message, {"constraint": constraint} if constraint else None)
        self.constraint = constraint


class RevocationStoreError(StorageError):
    """The revocation store could not be reached or timed out."""


class InvalidArgumentError(ValueError):
    """Bad input to a store operation (empty key, non-positive ttl)."""


__all__ = [
    "StorageError",
    "DuplicateKeyError",
    "RevocationStoreError",
    "InvalidArgumentError",
]
