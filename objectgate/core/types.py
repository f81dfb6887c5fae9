"""
Core Type Definitions for the Object Gateway

Implements the Result/Either monad used by the reliability layer and the
value types that flow between the gateway components.

Design Principles:
- Value types are frozen dataclasses (safe to share across coroutines)
- Never use null for absence of a policy (use Optional explicitly)
- References are built per request and never persisted

Complexity: O(1) for all type operations
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Callable,
    Generic,
    Literal,
    Optional,
    TypeVar,
    Union,
)

# =============================================================================
# TYPE VARIABLES FOR GENERIC CONTAINERS
# =============================================================================
T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type
U = TypeVar("U")  # Transform result type


# =============================================================================
# RESULT MONAD
# =============================================================================
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Success variant of Result monad.

    Immutable container for successful computation results.
    """

    value: T

    def is_ok(self) -> Literal[True]:
        return True

    def is_err(self) -> Literal[False]:
        return False

    def unwrap(self) -> T:
        """Extract value. Safe to call after is_ok() check."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return value, ignoring default."""
        return self.value

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        """Apply transformation to success value."""
        return Ok(fn(self.value))

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """
    Failure variant of Result monad.

    Carries the error value unchanged through `map`.
    """

    error: E

    def is_ok(self) -> Literal[False]:
        return False

    def is_err(self) -> Literal[True]:
        return True

    def unwrap(self) -> Any:
        """
        Unwrapping an error re-raises it when it is an exception.

        Raises:
            The wrapped exception, or RuntimeError for non-exception errors.
        """
        if isinstance(self.error, BaseException):
            raise self.error
        raise RuntimeError(f"Called unwrap() on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        """Return default value on error."""
        return default

    def map(self, fn: Callable[[Any], U]) -> Err[E]:
        """No-op on error variant."""
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Union type for pattern matching
Result = Union[Ok[T], Err[E]]


# =============================================================================
# OBJECT ADDRESSING
# =============================================================================
@dataclass(frozen=True, slots=True)
class ObjectReference:
    """
    Identifies exactly one backend object.

    Built per request from a logical path; immutable once constructed.

    Attributes:
        bucket: Backend bucket name.
        key: Object key inside the bucket (may contain '/').
    """

    bucket: str
    key: str

    def __str__(self) -> str:
        return f"/{self.bucket}/{self.key}"


@dataclass(frozen=True, slots=True)
class ObjectMetadata:
    """
    Object metadata as read from a backend HEAD.

    Never cached across requests.

    Attributes:
        content_type: MIME type, if the backend recorded one.
        size: Content length in bytes, if known.
        custom_metadata: User-defined string key-value pairs.
    """

    content_type: Optional[str] = None
    size: Optional[int] = None
    custom_metadata: dict[str, str] = field(default_factory=dict)


# =============================================================================
# CAPABILITY URLS
# =============================================================================
class HttpMethod(str, Enum):
    """HTTP verbs a capability URL can be scoped to."""

    GET = "GET"
    PUT = "PUT"
    DELETE = "DELETE"
    HEAD = "HEAD"

    @property
    def client_method(self) -> str:
        """Name of the S3 client operation signed for this verb."""
        return _CLIENT_METHODS[self]


_CLIENT_METHODS = {
    HttpMethod.GET: "get_object",
    HttpMethod.PUT: "put_object",
    HttpMethod.DELETE: "delete_object",
    HttpMethod.HEAD: "head_object",
}


@dataclass(frozen=True, slots=True)
class SignedUrlRequest:
    """
    Request for a capability URL bound to one (bucket, key, method) triple.

    Attributes:
        bucket: Target bucket.
        key: Target object key.
        method: Verb the URL authorizes (HttpMethod or its name).
        ttl_seconds: Lifetime of the URL from issuance.
    """

    bucket: str
    key: str
    method: Union[HttpMethod, str]
    ttl_seconds: int

    @classmethod
    def for_reference(
        cls,
        ref: ObjectReference,
        method: Union[HttpMethod, str],
        ttl_seconds: int,
    ) -> SignedUrlRequest:
        return cls(bucket=ref.bucket, key=ref.key, method=method, ttl_seconds=ttl_seconds)

    @property
    def reference(self) -> ObjectReference:
        return ObjectReference(bucket=self.bucket, key=self.key)


__all__ = [
    "Result",
    "Ok",
    "Err",
    "ObjectReference",
    "ObjectMetadata",
    "HttpMethod",
    "SignedUrlRequest",
]
