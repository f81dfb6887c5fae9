"""
Capability URL issuance.

A capability URL is a presigned URL bound to exactly one
(bucket, key, method) and expiring `ttl_seconds` after issuance. Signing
is delegated to the backend client (SigV4 query parameters), so no
long-lived secret ever appears in the URL.
"""

from __future__ import annotations

import logging
from typing import Union

from objectgate.core import constants as C
from objectgate.core.errors import UnsupportedMethodError
from objectgate.core.types import HttpMethod, SignedUrlRequest
from objectgate.storage.protocols import ObjectBackend

logger = logging.getLogger(__name__)


def parse_method(method: Union[HttpMethod, str]) -> HttpMethod:
    """
    Parse an HTTP verb, case-insensitively.

    Raises:
        UnsupportedMethodError: Not one of GET, PUT, DELETE, HEAD.
    """
    if isinstance(method, HttpMethod):
        return method
    if isinstance(method, str):
        try:
            return HttpMethod(method.strip().upper())
        except ValueError:
            pass
    raise UnsupportedMethodError.for_method(method)


class SignedUrlIssuer:
    """Issue method-scoped, time-limited capability URLs."""

    __slots__ = ("_backend", "_max_ttl_seconds")

    def __init__(self, backend: ObjectBackend, max_ttl_seconds: int = C.MAX_SIGNED_URL_TTL_S) -> None:
        if not (1 <= max_ttl_seconds <= C.MAX_SIGNED_URL_TTL_S):
            raise ValueError(f"max_ttl_seconds must be in [1, {C.MAX_SIGNED_URL_TTL_S}]")
        self._backend = backend
        self._max_ttl_seconds = max_ttl_seconds

    @property
    def max_ttl_seconds(self) -> int:
        return self._max_ttl_seconds

    async def sign(self, request: SignedUrlRequest) -> str:
        """
        Sign `request`.

        Raises:
            UnsupportedMethodError: The method is not GET/PUT/DELETE/HEAD.
            ValueError: ttl_seconds outside [1, max_ttl_seconds].
            BackendError: The backend could not sign.
        """
        method = parse_method(request.method)
        ttl = request.ttl_seconds
        if isinstance(ttl, bool) or not isinstance(ttl, int) or not (1 <= ttl <= self._max_ttl_seconds):
            raise ValueError(f"ttl_seconds must be an integer in [1, {self._max_ttl_seconds}], got {ttl!r}")

        url = await self._backend.presign(request.reference, method, ttl)
        logger.debug(f"Issued {method.value} capability for /{request.bucket}/{request.key} (ttl={ttl}s)")
        return url


__all__ = ["SignedUrlIssuer", "parse_method"]
