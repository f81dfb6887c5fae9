"""
Storage Module: S3-Compatible Backend Clients
=============================================

Provides:
- Protocol definition every backend client implements
- In-memory implementation for development/testing
- aioboto3 implementation for AWS S3, Cloudflare R2 and MinIO
- Factory function for backend selection

Design Principles:
-----------------
1. **Backend Agnostic**: Same interface for in-memory and production
2. **Factory Pattern**: Runtime backend selection via configuration
3. **Shared Client**: One connected client per process, passed explicitly

Example:
    >>> # Development (in-memory)
    >>> backend = await create_backend("memory")

    >>> # Production (configured)
    >>> backend = await create_backend("s3", S3Config.from_env())
"""

from __future__ import annotations

from typing import Optional

from objectgate.core.errors import BackendError, ConfigurationError
from objectgate.storage.config import S3Config
from objectgate.storage.memory_backend import BodyShape, InMemoryBackend
from objectgate.storage.protocols import (
    ContentHeaders,
    CopyPreconditions,
    ObjectBackend,
    ObjectBody,
    ObjectHead,
)
from objectgate.storage.s3_backend import BackendMetrics, S3Backend


async def create_backend(
    kind: str = "s3",
    config: Optional[S3Config] = None,
) -> ObjectBackend:
    """
    Create and connect a backend client.

    Args:
        kind: "s3" or "memory".
        config: S3 connection settings (default: S3Config.from_env()).

    Raises:
        ConfigurationError: Unknown backend kind.
        BackendError: The S3 client could not be created.
    """
    if kind == "memory":
        return InMemoryBackend()
    if kind != "s3":
        raise ConfigurationError(
            message=f"Unknown backend kind: {kind}",
            context={"kind": kind},
        )

    backend = S3Backend(config or S3Config.from_env())
    result = await backend.connect()
    if result.is_err():
        raise BackendError(message=result.error)
    return backend


__all__ = [
    "BackendMetrics",
    "BodyShape",
    "ContentHeaders",
    "CopyPreconditions",
    "InMemoryBackend",
    "ObjectBackend",
    "ObjectBody",
    "ObjectHead",
    "S3Backend",
    "S3Config",
    "create_backend",
]
