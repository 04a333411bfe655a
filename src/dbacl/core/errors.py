"""Error types raised by the access control layer."""

from __future__ import annotations

from pathlib import Path

INVALID_CONFIG_PREFIX = "Invalid JSON file"
ACCESS_DENIED_PREFIX = "Access Denied: "


class AccessControlError(Exception):
    """Base class for all access control failures."""


class ConfigurationError(AccessControlError, ValueError):
    """Raised when provider options are missing or invalid."""


class ConfigParseError(AccessControlError, ValueError):
    """
    Raised when a rule file cannot be read or parsed.

    The message always starts with INVALID_CONFIG_PREFIX so operators and
    callers can recognise the condition regardless of the underlying cause.
    """

    def __init__(self, path: str | Path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{INVALID_CONFIG_PREFIX} '{self.path}': {reason}")


class AccessDeniedError(AccessControlError):
    """
    Raised when an identity lacks permission for an operation.

    Attributes:
        operation: Human-readable operation name (e.g. "create schema").
        resource: Identity of the resource the operation targets.
        detail: Optional extra context appended to the message.
    """

    def __init__(
        self,
        operation: str,
        resource: object,
        detail: str | None = None,
        *,
        message: str | None = None,
    ):
        self.operation = operation
        self.resource = str(resource)
        self.detail = detail
        if message is None:
            message = f"Cannot {operation} {self.resource}"
            if detail:
                message = f"{message}: {detail}"
        super().__init__(f"{ACCESS_DENIED_PREFIX}{message}")
