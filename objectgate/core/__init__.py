"""
Core module: Type definitions, error hierarchy, and configuration.

This module provides the foundational abstractions for the gateway:
- Result/Either monads used by the reliability layer
- Object addressing and capability value types
- Error taxonomy with outward status mapping
- Configuration management with validation
"""

from objectgate.core.types import (
    Result,
    Ok,
    Err,
    ObjectReference,
    ObjectMetadata,
    HttpMethod,
    SignedUrlRequest,
)
from objectgate.core.errors import (
    ErrorCode,
    GatewayError,
    InvalidPathError,
    NotFoundError,
    UnsupportedMethodError,
    BackendError,
    ConcurrentModificationError,
    ConfigurationError,
)
from objectgate.core.config import GatewayConfig, StreamingConfig, ObservabilityConfig

__all__ = [
    "Result",
    "Ok",
    "Err",
    "ObjectReference",
    "ObjectMetadata",
    "HttpMethod",
    "SignedUrlRequest",
    "ErrorCode",
    "GatewayError",
    "InvalidPathError",
    "NotFoundError",
    "UnsupportedMethodError",
    "BackendError",
    "ConcurrentModificationError",
    "ConfigurationError",
    "GatewayConfig",
    "StreamingConfig",
    "ObservabilityConfig",
]
