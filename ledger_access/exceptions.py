"""
Ledger Access Exceptions - Custom exception hierarchy.

Errors propagate freely inside the layer and are swallowed only at the
query facade boundary, where they become incidents and safe defaults.
"""

from datetime import datetime, timezone
from typing import Any, Optional


class LedgerAccessError(Exception):
    """Base exception for all ledger access errors."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "endpoint": self.endpoint,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.endpoint:
            parts.append(f"[endpoint={self.endpoint}]")
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class InvalidAddressError(LedgerAccessError):
    """Candidate string is not a classic account address."""

    def __init__(
        self,
        message: str,
        address: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, None, None, context)
        self.address = address

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["address"] = self.address
        return data


class ConfigurationError(LedgerAccessError):
    """Invalid ledger access configuration."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, None, original_error, context)
        self.config_key = config_key

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["config_key"] = self.config_key
        return data


class EndpointConnectionError(LedgerAccessError):
    """A single endpoint refused or failed to open a session."""
    pass


class NoReachableEndpointError(LedgerAccessError):
    """Every endpoint in the pool failed to connect."""

    def __init__(
        self,
        message: str,
        attempted_endpoints: Optional[list[str]] = None,
        passes: int = 1,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, None, original_error, context)
        self.attempted_endpoints = attempted_endpoints or []
        self.passes = passes

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "attempted_endpoints": self.attempted_endpoints,
            "passes": self.passes,
        })
        return data


class LedgerRequestError(LedgerAccessError):
    """Request failed on an open session or the node replied with an error."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        command: Optional[str] = None,
        error_code: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, endpoint, original_error, context)
        self.command = command
        self.error_code = error_code

    @property
    def is_not_found(self) -> bool:
        """Whether the node reported the subject as missing."""
        return self.error_code in ("txnNotFound", "actNotFound", "notFound")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "command": self.command,
            "error_code": self.error_code,
        })
        return data


class NormalizationError(LedgerAccessError):
    """Reply could not be mapped into the canonical model."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        raw_data: Optional[Any] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, None, original_error, context)
        self.field_name = field_name
        self.raw_data = raw_data

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "field_name": self.field_name,
            "raw_data": str(self.raw_data)[:500] if self.raw_data else None,
        })
        return data
