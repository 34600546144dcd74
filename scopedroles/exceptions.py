"""Exception classes for scopedroles."""

from typing import Any, Dict, Optional


class ScopedRolesError(Exception):
    """Base class for all scopedroles errors.

    Attributes:
        message: Human readable error message
        details: Additional structured context about the error
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ValidationError(ScopedRolesError):
    """Raised when an argument fails validation."""


class MissingArgumentError(ValidationError):
    """Raised when a required argument is absent or empty."""

    def __init__(self, param: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Missing '{param}' param",
            details={"param": param, **(details or {})},
        )
        self.param = param


class InvalidConfigurationError(ScopedRolesError):
    """Raised when a configuration value is invalid."""

    def __init__(
        self,
        config_key: str,
        config_value: Any,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            f"Invalid configuration for '{config_key}' ({config_value!r}): {reason}",
            details={"config_key": config_key, **(details or {})},
        )
        self.config_key = config_key
        self.config_value = config_value


class StoreConnectionError(ScopedRolesError):
    """Raised when a store backend cannot be reached."""


__all__ = [
    "ScopedRolesError",
    "ValidationError",
    "MissingArgumentError",
    "InvalidConfigurationError",
    "StoreConnectionError",
]
