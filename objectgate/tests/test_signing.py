"""
Unit Tests: Capability URL Issuance

Tests:
    - Method scoping and parsing
    - TTL bounds
    - Signature verification against the in-memory backend
"""

import time
from urllib.parse import parse_qs, urlparse

import pytest

from objectgate.core import constants as C
from objectgate.core.errors import UnsupportedMethodError
from objectgate.core.types import HttpMethod, ObjectReference, SignedUrlRequest
from objectgate.objects.signing import SignedUrlIssuer, parse_method

REF = ObjectReference("media", "private/uploads/abc")


def _query(url):
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


class TestParseMethod:
    """Tests for parse_method."""

    @pytest.mark.parametrize("raw", ["get", "GET", " Put ", "delete", "head"])
    def test_case_insensitive(self, raw):
        assert parse_method(raw) is HttpMethod(raw.strip().upper())

    def test_enum_passthrough(self):
        assert parse_method(HttpMethod.PUT) is HttpMethod.PUT

    @pytest.mark.parametrize("raw", ["POST", "PATCH", "", 42, None])
    def test_unsupported(self, raw):
        with pytest.raises(UnsupportedMethodError) as exc_info:
            parse_method(raw)
        assert exc_info.value.http_status == 400


class TestSignedUrlIssuer:
    """Tests for SignedUrlIssuer.sign."""

    @pytest.mark.asyncio
    async def test_url_bound_to_method_and_object(self, backend):
        issuer = SignedUrlIssuer(backend)
        before = int(time.time())
        url = await issuer.sign(SignedUrlRequest.for_reference(REF, "put", 900))

        parsed = urlparse(url)
        query = _query(url)
        assert parsed.netloc == "media"
        assert parsed.path == "/private/uploads/abc"
        assert query["X-Method"] == "PUT"

        expires = int(query["X-Expires"])
        assert before + 900 <= expires <= int(time.time()) + 900
        assert query["X-Signature"] == backend.signature_for(HttpMethod.PUT, REF, expires)

    @pytest.mark.asyncio
    async def test_signature_differs_per_method(self, backend):
        issuer = SignedUrlIssuer(backend)
        get_url = await issuer.sign(SignedUrlRequest.for_reference(REF, HttpMethod.GET, 60))
        put_url = await issuer.sign(SignedUrlRequest.for_reference(REF, HttpMethod.PUT, 60))
        assert _query(get_url)["X-Signature"] != _query(put_url)["X-Signature"]

    @pytest.mark.asyncio
    async def test_unsupported_method(self, backend):
        issuer = SignedUrlIssuer(backend)
        with pytest.raises(UnsupportedMethodError):
            await issuer.sign(SignedUrlRequest.for_reference(REF, "POST", 60))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ttl", [0, -1, C.MAX_SIGNED_URL_TTL_S + 1, True, 1.5])
    async def test_ttl_out_of_range(self, backend, ttl):
        issuer = SignedUrlIssuer(backend)
        with pytest.raises(ValueError):
            await issuer.sign(SignedUrlRequest.for_reference(REF, HttpMethod.GET, ttl))

    @pytest.mark.asyncio
    async def test_ttl_bounds_inclusive(self, backend):
        issuer = SignedUrlIssuer(backend, max_ttl_seconds=120)
        await issuer.sign(SignedUrlRequest.for_reference(REF, HttpMethod.GET, 1))
        await issuer.sign(SignedUrlRequest.for_reference(REF, HttpMethod.GET, 120))
        with pytest.raises(ValueError):
            await issuer.sign(SignedUrlRequest.for_reference(REF, HttpMethod.GET, 121))

    def test_max_ttl_validated(self, backend):
        with pytest.raises(ValueError):
            SignedUrlIssuer(backend, max_ttl_seconds=0)
        with pytest.raises(ValueError):
            SignedUrlIssuer(backend, max_ttl_seconds=C.MAX_SIGNED_URL_TTL_S + 1)
