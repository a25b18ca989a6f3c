"""Custom exception hierarchy for the DojoPoints package."""

from __future__ import annotations


class DojoPointsError(Exception):
    """Base class for all DojoPoints specific errors."""


class ConfigurationError(DojoPointsError):
    """Raised when an environment setting cannot be interpreted."""


class StorageError(DojoPointsError):
    """Raised when the data store fails to read or persist records."""


class ValidationError(DojoPointsError, ValueError):
    """Raised when user supplied values are rejected before reaching the store."""


class DanglingReferenceError(DojoPointsError, LookupError):
    """Raised when a record refers to a child or behavior that does not exist."""


class ChildNotFoundError(DanglingReferenceError):
    """Raised when a child lookup fails."""


class BehaviorNotFoundError(DanglingReferenceError):
    """Raised when a behavior lookup fails."""


class BuiltinBehaviorError(DojoPointsError):
    """Raised when attempting to modify or delete a built-in behavior."""
