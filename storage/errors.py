"""
Errors shared by the persistent and volatile storage backends.
"""
from typing import Any, Dict, List, Optional


class StorageError(Exception):
    """Base class for storage failures."""


class ConnectivityError(StorageError):
    """The persistent backend could not be reached or dropped mid-operation."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        reason = f": {cause}" if cause else ""
        super().__init__(f"Persistent storage unavailable during {operation}{reason}")


class EntityValidationError(StorageError):
    """A document violates its entity schema."""

    def __init__(self, message: str = "Validation failed", errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class DuplicateKeyError(EntityValidationError):
    """A uniqueness constraint (username, email) would be violated."""

    def __init__(self, fields: List[str], message: str = "Username or email already exists"):
        super().__init__(message, [{"field": name, "message": "already exists"} for name in fields])
        self.fields = fields
