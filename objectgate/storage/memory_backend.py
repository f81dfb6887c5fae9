"""
In-Memory Object Backend (S3-compatible)
========================================

Process-local implementation of ObjectBackend for development and tests.

Mirrors the S3 behaviors the gateway depends on:
    - MD5 ETag computed on upload, unchanged by a metadata-only copy
    - LastModified advanced by every write
    - Copy-to-self with REPLACE semantics and CopySourceIf* preconditions
    - Presigned URLs scoped to (bucket, key, method) and expiry

The response body shape is configurable so the stream adapter can be
exercised against each shape a real client returns.

Example:
    backend = InMemoryBackend(body_shape=BodyShape.READER)
    await backend.put_object(ObjectReference("bucket", "a.txt"), b"hello")
    body = await backend.get_object(ObjectReference("bucket", "a.txt"))
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import secrets
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote, urlencode

from objectgate.core import constants as C
from objectgate.core.errors import BackendError, ConcurrentModificationError, NotFoundError
from objectgate.core.types import HttpMethod, ObjectReference
from objectgate.storage.protocols import (
    ContentHeaders,
    CopyPreconditions,
    ObjectBody,
    ObjectHead,
)


class BodyShape(str, Enum):
    """Shape of the body returned by get_object."""
    BYTES = "bytes"
    ASYNC_ITERABLE = "async_iterable"
    READER = "reader"


# =============================================================================
# BODY SHAPES
# =============================================================================
class MemoryChunkIterator:
    """Async iterable of fixed-size chunks with aclose()."""

    def __init__(self, data: bytes, chunk_size: int) -> None:
        self._data = data
        self._chunk_size = chunk_size
        self._offset = 0
        self.closed = False

    def __aiter__(self) -> MemoryChunkIterator:
        return self

    async def __anext__(self) -> bytes:
        if self.closed or self._offset >= len(self._data):
            raise StopAsyncIteration
        chunk = self._data[self._offset:self._offset + self._chunk_size]
        self._offset += len(chunk)
        await asyncio.sleep(0)
        return chunk

    async def aclose(self) -> None:
        self.closed = True


class MemoryReader:
    """Pull reader with the StreamingBody surface: async read(n), close()."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._offset = 0
        self.closed = False

    async def read(self, amt: int = -1) -> bytes:
        if self.closed:
            raise ValueError("read on closed body")
        if amt is None or amt < 0:
            amt = len(self._data) - self._offset
        chunk = self._data[self._offset:self._offset + amt]
        self._offset += len(chunk)
        await asyncio.sleep(0)
        return chunk

    def close(self) -> None:
        self.closed = True


# =============================================================================
# STORED OBJECT
# =============================================================================
@dataclass
class _StoredObject:
    data: bytes
    etag: str
    last_modified: datetime
    content_type: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    cache_control: Optional[str] = None
    content_encoding: Optional[str] = None
    content_disposition: Optional[str] = None

    def head(self, ref: ObjectReference) -> ObjectHead:
        return ObjectHead(
            bucket=ref.bucket,
            key=ref.key,
            content_type=self.content_type,
            size=len(self.data),
            etag=self.etag,
            last_modified=self.last_modified,
            metadata=dict(self.metadata),
            cache_control=self.cache_control,
            content_encoding=self.content_encoding,
            content_disposition=self.content_disposition,
        )


# =============================================================================
# IN-MEMORY BACKEND
# =============================================================================
class InMemoryBackend:
    """
    In-memory S3-compatible backend.

    Attributes:
        opened_bodies: Every body handed out by get_object, in order.
        copy_calls: Number of copy_object_metadata invocations.
    """

    def __init__(
        self,
        *,
        body_shape: BodyShape = BodyShape.READER,
        chunk_size: int = C.STREAM_CHUNK_SIZE_BYTES,
        signing_key: Optional[bytes] = None,
        base_url: str = "memory://",
    ) -> None:
        self._objects: Dict[Tuple[str, str], _StoredObject] = {}
        self._lock = asyncio.Lock()
        self._failures: Dict[str, List[BaseException]] = {}
        self._signing_key = signing_key or secrets.token_bytes(32)
        self._base_url = base_url
        self.body_shape = body_shape
        self.chunk_size = chunk_size
        self.opened_bodies: List[ObjectBody] = []
        self.copy_calls = 0

    @property
    def backend_name(self) -> str:
        return "memory"

    # -------------------------------------------------------------------------
    # TEST HOOKS
    # -------------------------------------------------------------------------

    def inject_failure(self, operation: str, error: BaseException, count: int = 1) -> None:
        """Make the next `count` calls of `operation` raise `error`."""
        self._failures.setdefault(operation, []).extend([error] * count)

    def _maybe_fail(self, operation: str) -> None:
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _next_timestamp(self, previous: Optional[datetime]) -> datetime:
        now = datetime.now(timezone.utc)
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    @staticmethod
    def _preconditions_hold(stored: _StoredObject, preconditions: CopyPreconditions) -> bool:
        """S3 rule: a matching ETag wins over a failed unmodified-since check."""
        if preconditions.if_match is not None:
            return preconditions.if_match == stored.etag
        if preconditions.if_unmodified_since is not None:
            return stored.last_modified <= preconditions.if_unmodified_since
        return True

    def _require(self, ref: ObjectReference) -> _StoredObject:
        stored = self._objects.get((ref.bucket, ref.key))
        if stored is None:
            raise NotFoundError.for_object(ref.bucket, ref.key)
        return stored

    # -------------------------------------------------------------------------
    # OBJECT OPERATIONS
    # -------------------------------------------------------------------------

    async def head_object(self, ref: ObjectReference) -> ObjectHead:
        async with self._lock:
            self._maybe_fail("head_object")
            return self._require(ref).head(ref)

    async def get_object(self, ref: ObjectReference) -> ObjectBody:
        async with self._lock:
            self._maybe_fail("get_object")
            data = self._require(ref).data

        if self.body_shape is BodyShape.BYTES:
            body: ObjectBody = data
        elif self.body_shape is BodyShape.ASYNC_ITERABLE:
            body = MemoryChunkIterator(data, self.chunk_size)
        else:
            body = MemoryReader(data)
        self.opened_bodies.append(body)
        return body

    async def put_object(
        self,
        ref: ObjectReference,
        data: bytes,
        *,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> ObjectHead:
        """Store object; ETag is the MD5 of the content."""
        async with self._lock:
            self._maybe_fail("put_object")
            previous = self._objects.get((ref.bucket, ref.key))
            stored = _StoredObject(
                data=bytes(data),
                etag=hashlib.md5(data).hexdigest(),
                last_modified=self._next_timestamp(previous.last_modified if previous else None),
                content_type=content_type,
                metadata=dict(metadata or {}),
            )
            self._objects[(ref.bucket, ref.key)] = stored
            return stored.head(ref)

    async def copy_object_metadata(
        self,
        ref: ObjectReference,
        *,
        metadata: Dict[str, str],
        headers: ContentHeaders,
        preconditions: Optional[CopyPreconditions] = None,
    ) -> None:
        """Self-copy with REPLACE semantics: omitted headers are dropped."""
        async with self._lock:
            self.copy_calls += 1
            self._maybe_fail("copy_object_metadata")
            stored = self._require(ref)

            if preconditions is not None and not self._preconditions_hold(stored, preconditions):
                raise ConcurrentModificationError.precondition_failed(ref.bucket, ref.key)

            self._objects[(ref.bucket, ref.key)] = replace(
                stored,
                last_modified=self._next_timestamp(stored.last_modified),
                metadata=dict(metadata),
                content_type=headers.content_type,
                cache_control=headers.cache_control,
                content_encoding=headers.content_encoding,
                content_disposition=headers.content_disposition,
            )

    async def delete_object(self, ref: ObjectReference) -> None:
        async with self._lock:
            self._maybe_fail("delete_object")
            self._objects.pop((ref.bucket, ref.key), None)

    async def presign(
        self,
        ref: ObjectReference,
        method: HttpMethod,
        ttl_seconds: int,
    ) -> str:
        """
        HMAC-signed URL over (method, bucket, key, expiry).

        The signing key never appears in the URL.
        """
        self._maybe_fail("presign")
        expires = int(time.time()) + ttl_seconds
        signature = self.signature_for(method, ref, expires)
        query = urlencode({
            "X-Method": method.value,
            "X-Expires": str(expires),
            "X-Signature": signature,
        })
        return f"{self._base_url}{quote(ref.bucket)}/{quote(ref.key)}?{query}"

    def signature_for(self, method: HttpMethod, ref: ObjectReference, expires: int) -> str:
        message = f"{method.value}\n{ref.bucket}\n{ref.key}\n{expires}".encode()
        return hmac.new(self._signing_key, message, hashlib.sha256).hexdigest()

    async def close(self) -> None:
        return None

    # -------------------------------------------------------------------------
    # INSPECTION
    # -------------------------------------------------------------------------

    def exists(self, ref: ObjectReference) -> bool:
        return (ref.bucket, ref.key) in self._objects

    def set_headers(
        self,
        ref: ObjectReference,
        *,
        cache_control: Optional[str] = None,
        content_encoding: Optional[str] = None,
        content_disposition: Optional[str] = None,
    ) -> None:
        """Set stored HTTP headers directly, without touching ETag or LastModified."""
        stored = self._objects.get((ref.bucket, ref.key))
        if stored is None:
            raise BackendError(message=f"No object at {ref}")
        self._objects[(ref.bucket, ref.key)] = replace(
            stored,
            cache_control=cache_control,
            content_encoding=content_encoding,
            content_disposition=content_disposition,
        )

    def count(self) -> int:
        return len(self._objects)


__all__ = [
    "BodyShape",
    "InMemoryBackend",
    "MemoryChunkIterator",
    "MemoryReader",
]
