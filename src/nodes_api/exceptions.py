"""
Exceptions raised by the nodes service.

All application-specific exceptions inherit from NodesError. The repository
raises these; the API layer maps them to HTTP status codes.
"""

from __future__ import annotations

from typing import Any, Optional


class NodesError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message: Human-readable error message
        details: Additional error details (for debugging)
        recoverable: Whether retrying the operation later may succeed
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(NodesError):
    """Invalid or missing configuration (e.g. no database URL)."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details=details, recoverable=False)


class ValidationError(NodesError):
    """
    Bad input. Never retried.

    Examples:
        - Empty or missing label
        - Non-positive search limit
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
    ):
        details: dict[str, Any] = {}
        if field_name:
            details["field_name"] = field_name
        if field_value is not None:
            details["field_value"] = str(field_value)[:100]
        super().__init__(message, details=details, recoverable=False)


class NotFound(NodesError):
    """No node exists with the given id."""

    def __init__(self, node_id: Any):
        super().__init__("Node not found", details={"id": str(node_id)}, recoverable=False)
        self.node_id = node_id


class StoreError(NodesError):
    """Non-transient failure talking to the store."""

    def __init__(self, message: str, operation: Optional[str] = None, recoverable: bool = False):
        details = {"operation": operation} if operation else None
        super().__init__(message, details=details, recoverable=recoverable)


class StoreUnavailable(StoreError):
    """Transient store failure that persisted after all retry attempts."""

    def __init__(self, message: str, operation: Optional[str] = None, attempts: int = 0):
        super().__init__(message, operation=operation, recoverable=True)
        self.attempts = attempts
        self.details["attempts"] = attempts


__all__ = [
    "NodesError",
    "ConfigurationError",
    "ValidationError",
    "NotFound",
    "StoreError",
    "StoreUnavailable",
]
