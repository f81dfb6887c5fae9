"""
Backend Protocol Definitions: Object Storage Client Abstraction

Provides the structural subtyping protocol (PEP 544) every backend client
implements, plus the value types exchanged with it:
- ObjectHead: HEAD result, including the HTTP headers a metadata rewrite
  must carry forward
- ContentHeaders: the HTTP metadata headers preserved across a copy
- CopyPreconditions: optimistic-concurrency guard for copy-to-self

Design Principles:
    - Async-first: every call may suspend, none blocks other requests
    - Backends raise NotFoundError for their own "not found" signal,
      ConcurrentModificationError for a failed precondition and
      BackendError for everything else
    - One client instance is shared by all requests and holds no
      per-request state
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from objectgate.core.types import HttpMethod, ObjectMetadata, ObjectReference


# Backend-native response body: aiobotocore StreamingBody, an async
# iterable of chunks, a reader object, or a plain bytes payload.
ObjectBody = Any


# =============================================================================
# HEAD RESULT
# =============================================================================
@dataclass(frozen=True, slots=True)
class ObjectHead:
    """
    Everything a HEAD request reports about one object.

    Attributes:
        bucket: Bucket of the object.
        key: Key of the object.
        content_type: MIME type.
        size: Content length in bytes.
        etag: Entity tag, quotes stripped.
        last_modified: Last modification time (timezone-aware).
        metadata: Custom string metadata.
        cache_control: Stored Cache-Control header.
        content_encoding: Stored Content-Encoding header.
        content_disposition: Stored Content-Disposition header.
    """
    bucket: str
    key: str
    content_type: Optional[str] = None
    size: Optional[int] = None
    etag: Optional[str] = None
    last_modified: Optional[datetime] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    cache_control: Optional[str] = None
    content_encoding: Optional[str] = None
    content_disposition: Optional[str] = None

    @property
    def reference(self) -> ObjectReference:
        return ObjectReference(bucket=self.bucket, key=self.key)

    def to_metadata(self) -> ObjectMetadata:
        return ObjectMetadata(
            content_type=self.content_type,
            size=self.size,
            custom_metadata=dict(self.metadata),
        )


@dataclass(frozen=True, slots=True)
class ContentHeaders:
    """HTTP metadata headers that survive a metadata-replacing copy."""
    content_type: Optional[str] = None
    cache_control: Optional[str] = None
    content_encoding: Optional[str] = None
    content_disposition: Optional[str] = None

    @classmethod
    def from_head(cls, head: ObjectHead) -> ContentHeaders:
        return cls(
            content_type=head.content_type,
            cache_control=head.cache_control,
            content_encoding=head.content_encoding,
            content_disposition=head.content_disposition,
        )


@dataclass(frozen=True, slots=True)
class CopyPreconditions:
    """
    Conditions the source must still satisfy when the copy executes.

    Follows S3 semantics: when both are set and `if_match` holds, the copy
    proceeds even if `if_unmodified_since` fails.
    """
    if_match: Optional[str] = None
    if_unmodified_since: Optional[datetime] = None

    @classmethod
    def from_head(cls, head: ObjectHead) -> CopyPreconditions:
        """
        Guard for a metadata-only self-copy of the object `head` describes.

        Such a copy keeps the ETag, so only LastModified can reveal a
        concurrent metadata write. An ETag condition would also override
        the date condition on S3.
        """
        return cls(if_unmodified_since=head.last_modified)

    @property
    def is_empty(self) -> bool:
        return self.if_match is None and self.if_unmodified_since is None


# =============================================================================
# BACKEND PROTOCOL
# =============================================================================
@runtime_checkable
class ObjectBackend(Protocol):
    """
    S3-compatible object storage client.

    Implementations:
    - S3Backend: aioboto3 client (AWS S3, R2, MinIO)
    - InMemoryBackend: process-local dictionaries (development/testing)
    """

    @property
    def backend_name(self) -> str:
        """Backend identifier for logs (e.g. "s3", "memory")."""
        ...

    async def head_object(self, ref: ObjectReference) -> ObjectHead:
        """
        Fetch object metadata without the body.

        Raises:
            NotFoundError: The object does not exist.
            BackendError: Any other backend failure.
        """
        ...

    async def get_object(self, ref: ObjectReference) -> ObjectBody:
        """
        Open the object body in its backend-native shape.

        Raises:
            NotFoundError: The object does not exist.
            BackendError: Any other backend failure.
        """
        ...

    async def put_object(
        self,
        ref: ObjectReference,
        data: bytes,
        *,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> ObjectHead:
        """Upload bytes, replacing any existing object."""
        ...

    async def copy_object_metadata(
        self,
        ref: ObjectReference,
        *,
        metadata: Dict[str, str],
        headers: ContentHeaders,
        preconditions: Optional[CopyPreconditions] = None,
    ) -> None:
        """
        Copy the object onto itself, replacing custom metadata and
        HTTP headers. Never creates an object.

        Raises:
            NotFoundError: The object does not exist.
            ConcurrentModificationError: A precondition no longer holds.
            BackendError: Any other backend failure.
        """
        ...

    async def delete_object(self, ref: ObjectReference) -> None:
        """Delete an object; deleting a missing object is not an error."""
        ...

    async def presign(
        self,
        ref: ObjectReference,
        method: HttpMethod,
        ttl_seconds: int,
    ) -> str:
        """Presigned URL for exactly one (bucket, key, method)."""
        ...

    async def close(self) -> None:
        """Release the client and its connection pool."""
        ...
