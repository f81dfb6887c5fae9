"""
S3-Compatible Backend Client
============================

aioboto3 implementation of ObjectBackend for AWS S3, Cloudflare R2, MinIO
and other S3-compatible services.

Design Principles:
------------------
1. **Zero-Copy**: GET returns the native StreamingBody; the stream adapter
   decides how to consume it
2. **Error Remapping**: 404/NoSuchKey -> NotFoundError, 412 ->
   ConcurrentModificationError, everything else -> BackendError
3. **Conditional Copy**: metadata rewrites carry CopySourceIf* guards
4. **Presigned URLs**: SigV4 query signing, no secrets in the URL

Thread Safety:
--------------
- aiobotocore clients are safe for concurrent async operations
- No shared mutable state in instance besides the counters
- One client (and its connection pool) serves every request
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional, TYPE_CHECKING

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from objectgate.core.errors import BackendError, ConcurrentModificationError, NotFoundError
from objectgate.core.types import Err, HttpMethod, Ok, ObjectReference, Result
from objectgate.storage.config import S3Config
from objectgate.storage.protocols import (
    ContentHeaders,
    CopyPreconditions,
    ObjectBody,
    ObjectHead,
)

if TYPE_CHECKING:
    from types_aiobotocore_s3 import S3Client


# =============================================================================
# CONSTANTS
# =============================================================================

# Codes S3-compatible services use for a missing object or bucket
_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound", "NoSuchObject", "NoSuchBucket"})

# Codes for a failed CopySourceIf* precondition
_PRECONDITION_CODES = frozenset({"412", "PreconditionFailed"})


# =============================================================================
# METRICS COLLECTOR
# =============================================================================

@dataclass(slots=True)
class BackendMetrics:
    """
    Operation counters for the backend client.
    """
    head_count: int = 0
    get_count: int = 0
    put_count: int = 0
    copy_count: int = 0
    delete_count: int = 0
    presign_count: int = 0

    bytes_uploaded: int = 0

    not_found_count: int = 0
    conflict_count: int = 0
    error_count: int = 0
    timeout_errors: int = 0

    def snapshot(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in self.__slots__}


# =============================================================================
# ERROR TRANSLATION
# =============================================================================

def _client_error_code(error: ClientError) -> tuple[str, Optional[int]]:
    """Extract (error code, HTTP status) from a botocore ClientError."""
    response = getattr(error, "response", None) or {}
    code = str((response.get("Error") or {}).get("Code", ""))
    status = (response.get("ResponseMetadata") or {}).get("HTTPStatusCode")
    return code, status


def is_not_found(error: BaseException) -> bool:
    if not isinstance(error, ClientError):
        return False
    code, status = _client_error_code(error)
    return code in _NOT_FOUND_CODES or status == 404


def is_precondition_failed(error: BaseException) -> bool:
    if not isinstance(error, ClientError):
        return False
    code, status = _client_error_code(error)
    return code in _PRECONDITION_CODES or status == 412


# =============================================================================
# S3 BACKEND
# =============================================================================

class S3Backend:
    """
    Production S3-compatible backend client.

    Example:
        >>> backend = S3Backend(S3Config.from_env())
        >>> (await backend.connect()).unwrap()
        >>> head = await backend.head_object(ObjectReference("bucket", "key"))
        >>> await backend.close()
    """

    __slots__ = (
        "_config",
        "_client",
        "_client_cm",
        "_session",
        "_metrics",
    )

    def __init__(self, config: S3Config, client: Optional["S3Client"] = None) -> None:
        """
        Initialize the backend.

        Args:
            config: Connection configuration.
            client: Already-open S3 client (skips connect()).

        Note:
            Call `connect()` before performing operations unless a client
            is injected.
        """
        self._config = config
        self._client: Optional["S3Client"] = client
        self._client_cm: Any = None
        self._session: Any = None
        self._metrics = BackendMetrics()

    @property
    def backend_name(self) -> str:
        return "s3"

    @property
    def config(self) -> S3Config:
        return self._config

    @property
    def metrics(self) -> BackendMetrics:
        """Get current metrics snapshot."""
        return self._metrics

    # -------------------------------------------------------------------------
    # CONNECTION MANAGEMENT
    # -------------------------------------------------------------------------

    async def connect(self) -> Result[None, str]:
        """
        Create the aioboto3 session and S3 client with its connection pool.

        Returns:
            Ok(None) on success, Err with message on failure.
        """
        if self._client is not None:
            return Ok(None)

        try:
            self._session = aioboto3.Session(**self._config.get_session_kwargs())

            client_config = Config(
                max_pool_connections=self._config.max_pool_connections,
                connect_timeout=self._config.connect_timeout_seconds,
                read_timeout=self._config.read_timeout_seconds,
                retries={"max_attempts": self._config.max_retries, "mode": "standard"},
                signature_version="s3v4",
                s3={"addressing_style": self._config.addressing_style},
            )

            self._client_cm = self._session.client(
                "s3", config=client_config, **self._config.get_client_kwargs()
            )
            self._client = await self._client_cm.__aenter__()
            return Ok(None)

        except (BotoCoreError, ClientError, ValueError) as e:
            self._metrics.error_count += 1
            return Err(f"S3 connection failed: {e}")

    async def close(self) -> None:
        """
        Close the client and release pooled connections.

        Safe to call multiple times.
        """
        if self._client_cm is not None:
            await self._client_cm.__aexit__(None, None, None)
            self._client_cm = None
        self._client = None

    async def health_check(self, bucket: str) -> Result[Dict[str, Any], str]:
        """Check that `bucket` is reachable with the configured credentials."""
        if self._client is None:
            return Err("Not connected")
        try:
            await self._client.head_bucket(Bucket=bucket)
            return Ok({
                "connected": True,
                "bucket": bucket,
                "endpoint": self._config.resolved_endpoint_url,
                "metrics": self._metrics.snapshot(),
            })
        except (BotoCoreError, ClientError) as e:
            return Err(f"Health check failed: {e}")

    def _require_client(self) -> "S3Client":
        if self._client is None:
            raise BackendError(message="S3 backend not connected")
        return self._client

    def _translate(self, error: BaseException, operation: str, ref: ObjectReference) -> Exception:
        """Map a client failure onto the gateway taxonomy."""
        if is_not_found(error):
            self._metrics.not_found_count += 1
            return NotFoundError.for_object(ref.bucket, ref.key, cause=error)
        if is_precondition_failed(error):
            self._metrics.conflict_count += 1
            return ConcurrentModificationError.precondition_failed(ref.bucket, ref.key, cause=error)
        if isinstance(error, asyncio.TimeoutError):
            self._metrics.timeout_errors += 1
        self._metrics.error_count += 1
        return BackendError.operation_failed(operation, ref.bucket, ref.key, cause=error)

    # -------------------------------------------------------------------------
    # CORE OPERATIONS
    # -------------------------------------------------------------------------

    async def head_object(self, ref: ObjectReference) -> ObjectHead:
        """
        Get object metadata without downloading content.

        Complexity: O(1) - metadata only.
        """
        client = self._require_client()
        try:
            response = await client.head_object(Bucket=ref.bucket, Key=ref.key)
        except (BotoCoreError, ClientError, asyncio.TimeoutError) as e:
            raise self._translate(e, "head_object", ref) from e

        self._metrics.head_count += 1
        return _head_from_response(ref, response)

    async def get_object(self, ref: ObjectReference) -> ObjectBody:
        """
        Open the object body.

        Returns the native aiobotocore StreamingBody; the caller owns it
        and must close it.
        """
        client = self._require_client()
        try:
            response = await client.get_object(Bucket=ref.bucket, Key=ref.key)
        except (BotoCoreError, ClientError, asyncio.TimeoutError) as e:
            raise self._translate(e, "get_object", ref) from e

        body = response.get("Body")
        if body is None:
            raise NotFoundError.for_object(ref.bucket, ref.key)
        self._metrics.get_count += 1
        return body

    async def put_object(
        self,
        ref: ObjectReference,
        data: bytes,
        *,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> ObjectHead:
        """
        Upload object bytes in a single PUT.

        Complexity: O(n) where n = data size.
        """
        client = self._require_client()
        put_kwargs: Dict[str, Any] = {
            "Bucket": ref.bucket,
            "Key": ref.key,
            "Body": data,
        }
        if content_type:
            put_kwargs["ContentType"] = content_type
        if metadata:
            # S3 metadata keys and values must be strings
            put_kwargs["Metadata"] = {str(k): str(v) for k, v in metadata.items()}

        try:
            response = await client.put_object(**put_kwargs)
        except (BotoCoreError, ClientError, asyncio.TimeoutError) as e:
            raise self._translate(e, "put_object", ref) from e

        self._metrics.put_count += 1
        self._metrics.bytes_uploaded += len(data)
        return ObjectHead(
            bucket=ref.bucket,
            key=ref.key,
            content_type=content_type,
            size=len(data),
            etag=(response.get("ETag") or "").strip('"') or None,
            metadata=dict(metadata or {}),
        )

    async def copy_object_metadata(
        self,
        ref: ObjectReference,
        *,
        metadata: Dict[str, str],
        headers: ContentHeaders,
        preconditions: Optional[CopyPreconditions] = None,
    ) -> None:
        """
        Server-side copy of the object onto itself with REPLACE semantics.

        No data transfer through client. HTTP headers not passed here are
        dropped by S3, so every preserved header is sent explicitly.
        """
        client = self._require_client()
        copy_kwargs: Dict[str, Any] = {
            "Bucket": ref.bucket,
            "Key": ref.key,
            "CopySource": {"Bucket": ref.bucket, "Key": ref.key},
            "Metadata": dict(metadata),
            "MetadataDirective": "REPLACE",
        }
        for name, value in (
            ("ContentType", headers.content_type),
            ("CacheControl", headers.cache_control),
            ("ContentEncoding", headers.content_encoding),
            ("ContentDisposition", headers.content_disposition),
        ):
            if value:
                copy_kwargs[name] = value

        if preconditions is not None:
            if preconditions.if_match:
                copy_kwargs["CopySourceIfMatch"] = f'"{preconditions.if_match}"'
            if preconditions.if_unmodified_since is not None:
                copy_kwargs["CopySourceIfUnmodifiedSince"] = preconditions.if_unmodified_since

        try:
            await client.copy_object(**copy_kwargs)
        except (BotoCoreError, ClientError, asyncio.TimeoutError) as e:
            raise self._translate(e, "copy_object", ref) from e

        self._metrics.copy_count += 1

    async def delete_object(self, ref: ObjectReference) -> None:
        """Delete object. S3 reports success for missing keys."""
        client = self._require_client()
        try:
            await client.delete_object(Bucket=ref.bucket, Key=ref.key)
        except (BotoCoreError, ClientError, asyncio.TimeoutError) as e:
            error = self._translate(e, "delete_object", ref)
            if isinstance(error, NotFoundError):
                return
            raise error from e

        self._metrics.delete_count += 1

    # -------------------------------------------------------------------------
    # PRESIGNED URLS
    # -------------------------------------------------------------------------

    async def presign(
        self,
        ref: ObjectReference,
        method: HttpMethod,
        ttl_seconds: int,
    ) -> str:
        """
        Generate a presigned URL scoped to one (bucket, key, method).

        The URL carries a SigV4 signature and expiry, never the secret key.
        """
        client = self._require_client()
        try:
            url = await client.generate_presigned_url(
                ClientMethod=method.client_method,
                Params={"Bucket": ref.bucket, "Key": ref.key},
                ExpiresIn=ttl_seconds,
                HttpMethod=method.value,
            )
        except (BotoCoreError, ClientError) as e:
            raise self._translate(e, "presign", ref) from e

        self._metrics.presign_count += 1
        return url


def _head_from_response(ref: ObjectReference, response: Dict[str, Any]) -> ObjectHead:
    etag = (response.get("ETag") or "").strip('"')
    return ObjectHead(
        bucket=ref.bucket,
        key=ref.key,
        content_type=response.get("ContentType"),
        size=response.get("ContentLength"),
        etag=etag or None,
        last_modified=response.get("LastModified"),
        metadata=dict(response.get("Metadata") or {}),
        cache_control=response.get("CacheControl"),
        content_encoding=response.get("ContentEncoding"),
        content_disposition=response.get("ContentDisposition"),
    )


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    "S3Backend",
    "BackendMetrics",
    "is_not_found",
    "is_precondition_failed",
]
