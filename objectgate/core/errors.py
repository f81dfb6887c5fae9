"""
Error Hierarchy for the Object Gateway

Design Principles:
- Expected conditions (missing object, malformed path) are distinct types so
  callers can map them to a 404-equivalent signal
- Configuration problems are loud and separate from request errors
- Backend failures pass through unless the backend's own "not found" or
  "precondition failed" signal is remapped
- Carry full error context for debugging and audit trails

Each error type includes:
- Unique error code for programmatic handling
- Human-readable message for logging
- Optional cause chain for root cause analysis
- Timestamp for correlation with request logs

Usage:
    try:
        ref = await service.resolve_entity(path)
    except NotFoundError as e:
        return e.http_status, e.to_dict()
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from uuid import uuid4


# =============================================================================
# ERROR CODE ENUMERATION
# =============================================================================
class ErrorCode(Enum):
    """
    Unique error codes for programmatic error handling.

    Codes are grouped by subsystem:
    - 1xxx: Addressing errors (paths, objects, capabilities)
    - 2xxx: Backend errors
    - 9xxx: Internal/configuration errors
    """

    # Addressing errors (1xxx)
    INVALID_PATH = 1001
    OBJECT_NOT_FOUND = 1002
    UNSUPPORTED_METHOD = 1003

    # Backend errors (2xxx)
    BACKEND_FAILURE = 2001
    BACKEND_CONCURRENT_MODIFICATION = 2002
    BACKEND_STREAM_FAILED = 2003

    # Internal errors (9xxx)
    INTERNAL_ERROR = 9001
    INTERNAL_CONFIGURATION_ERROR = 9002


_HTTP_STATUS = {
    ErrorCode.INVALID_PATH: 404,
    ErrorCode.OBJECT_NOT_FOUND: 404,
    ErrorCode.UNSUPPORTED_METHOD: 400,
    ErrorCode.BACKEND_FAILURE: 502,
    ErrorCode.BACKEND_CONCURRENT_MODIFICATION: 409,
    ErrorCode.BACKEND_STREAM_FAILED: 502,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.INTERNAL_CONFIGURATION_ERROR: 500,
}


# =============================================================================
# BASE ERROR CLASS
# =============================================================================
@dataclass
class GatewayError(Exception):
    """
    Base class for all gateway errors.

    Provides common infrastructure for error handling:
    - Unique error ID for log correlation
    - Error code for programmatic handling
    - Timestamp (nanoseconds since epoch)
    - Cause chain for root cause analysis
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    message: str = "Internal error"
    error_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp_ns: int = field(default_factory=time.time_ns)
    cause: Optional[BaseException] = None
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Initialize Exception base class with message
        super().__init__(self.message)
        if self.cause is not None:
            self.__cause__ = self.cause

    @property
    def http_status(self) -> int:
        """Outward status a transport layer should report for this error."""
        return _HTTP_STATUS.get(self.code, 500)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize error to dictionary for logging/API responses.

        Note: Excludes the cause to avoid leaking backend details.
        """
        return {
            "error_id": self.error_id,
            "code": self.code.name,
            "code_value": self.code.value,
            "message": self.message,
            "timestamp_ns": self.timestamp_ns,
            "context": self.context,
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message} (id={self.error_id[:8]})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.name}, "
            f"message={self.message!r}, "
            f"error_id={self.error_id!r})"
        )


# =============================================================================
# ADDRESSING ERRORS
# =============================================================================
@dataclass
class InvalidPathError(GatewayError):
    """Malformed logical path. A caller error."""

    code: ErrorCode = ErrorCode.INVALID_PATH
    message: str = "Invalid path"

    @classmethod
    def for_path(cls, path: str, reason: str) -> InvalidPathError:
        return cls(
            message=f"Invalid path: {reason}",
            context={"path": path[:200], "reason": reason},
        )


@dataclass
class NotFoundError(GatewayError):
    """
    Object or entity is absent.

    Deliberately uniform: a malformed entity path and a missing object
    are reported the same way.
    """

    code: ErrorCode = ErrorCode.OBJECT_NOT_FOUND
    message: str = "Object not found"

    @classmethod
    def for_object(
        cls,
        bucket: str,
        key: str,
        cause: Optional[BaseException] = None,
    ) -> NotFoundError:
        return cls(cause=cause, context={"bucket": bucket, "key": key})


@dataclass
class UnsupportedMethodError(GatewayError):
    """Capability URL requested for a verb the signer does not handle."""

    code: ErrorCode = ErrorCode.UNSUPPORTED_METHOD
    message: str = "Unsupported method"

    @classmethod
    def for_method(cls, method: Any) -> UnsupportedMethodError:
        return cls(
            message=f"Unsupported method: {method}",
            context={"method": str(method)},
        )


# =============================================================================
# BACKEND ERRORS
# =============================================================================
@dataclass
class BackendError(GatewayError):
    """
    Unexpected transport or backend failure.

    Covers S3 client errors other than not-found, and read failures
    while streaming an object body.
    """

    code: ErrorCode = ErrorCode.BACKEND_FAILURE
    message: str = "Storage backend error"

    @classmethod
    def operation_failed(
        cls,
        operation: str,
        bucket: str,
        key: str,
        cause: Optional[BaseException] = None,
    ) -> BackendError:
        """Backend rejected or failed an operation."""
        return cls(
            message=f"Backend operation '{operation}' failed for /{bucket}/{key}",
            cause=cause,
            context={"operation": operation, "bucket": bucket, "key": key},
        )

    @classmethod
    def stream_failed(cls, cause: Optional[BaseException] = None) -> BackendError:
        """Reading the object body failed mid-stream."""
        return cls(
            code=ErrorCode.BACKEND_STREAM_FAILED,
            message="Error reading object body",
            cause=cause,
            context={"cause_type": type(cause).__name__ if cause else None},
        )


@dataclass
class ConcurrentModificationError(BackendError):
    """
    A conditional metadata write lost a race with another writer.

    Raised when the backend rejects a copy precondition (HTTP 412), and
    when the policy write retries are exhausted.
    """

    code: ErrorCode = ErrorCode.BACKEND_CONCURRENT_MODIFICATION
    message: str = "Object was modified concurrently"

    @classmethod
    def precondition_failed(
        cls,
        bucket: str,
        key: str,
        cause: Optional[BaseException] = None,
    ) -> ConcurrentModificationError:
        return cls(
            message=f"Precondition failed for /{bucket}/{key}",
            cause=cause,
            context={"bucket": bucket, "key": key},
        )

    @classmethod
    def retries_exhausted(
        cls,
        attempts: int,
        last_error: Optional[BaseException] = None,
    ) -> ConcurrentModificationError:
        return cls(
            message=f"Conditional write failed after {attempts} attempts",
            cause=last_error,
            context={"attempts": attempts, "last_error": str(last_error) if last_error else None},
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================
@dataclass
class ConfigurationError(GatewayError):
    """
    Required setting missing or empty, or a registry lookup for an
    unknown access group type.

    Operational problem: surfaced loudly, at startup where checkable.
    """

    code: ErrorCode = ErrorCode.INTERNAL_CONFIGURATION_ERROR
    message: str = "Configuration error"

    @classmethod
    def missing_setting(cls, setting: str, hint: str = "") -> ConfigurationError:
        message = f"{setting} not set"
        if hint:
            message = f"{message}. {hint}"
        return cls(message=message, context={"setting": setting})

    @classmethod
    def unknown_group_type(cls, group_type: str) -> ConfigurationError:
        return cls(
            message=f"Unknown access group type: {group_type}",
            context={"group_type": group_type},
        )


__all__ = [
    "ErrorCode",
    "GatewayError",
    "InvalidPathError",
    "NotFoundError",
    "UnsupportedMethodError",
    "BackendError",
    "ConcurrentModificationError",
    "ConfigurationError",
]
