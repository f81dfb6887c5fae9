"""
Backend Connection Configuration
================================

Type-safe, immutable configuration for the S3-compatible backend client
(AWS S3, Cloudflare R2, MinIO).

Design Principles:
------------------
1. **Immutability**: Frozen dataclass, safe to share across coroutines
2. **Validation**: Pre-conditions checked at construction time
3. **Environment**: Loaded from R2_* variables, falling back to AWS_*
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

from objectgate.core import constants as C


@dataclass(frozen=True, slots=True)
class S3Config:
    """
    S3-compatible backend client configuration.

    The client is bucket-agnostic: buckets come from resolved paths.

    Attributes:
        region: AWS region, or 'auto' for R2.
        endpoint_url: Custom endpoint for MinIO/R2 (None for AWS).
        account_id: Cloudflare account; derives the R2 endpoint when
            endpoint_url is not set.
        access_key_id: Access key (None for ambient credentials).
        secret_access_key: Secret key (None for ambient credentials).
        session_token: Temporary session token for STS.
        addressing_style: 'path' or 'virtual'. Path style keeps the
            bucket in the URL path, which normalize_path relies on.
        max_pool_connections: Connection pool size shared by all requests.
        connect_timeout_seconds: TCP connect timeout.
        read_timeout_seconds: Read operation timeout.
        max_retries: Max botocore retry attempts for transient failures.
        use_ssl: Use HTTPS for connections.
        verify_ssl: Verify SSL certificates (disable for self-signed).
    """
    region: str = C.S3_DEFAULT_REGION
    endpoint_url: Optional[str] = None
    account_id: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    addressing_style: str = "path"

    max_pool_connections: int = C.S3_MAX_POOL_CONNECTIONS
    connect_timeout_seconds: int = C.S3_CONNECT_TIMEOUT_S
    read_timeout_seconds: int = C.S3_READ_TIMEOUT_S
    max_retries: int = C.S3_MAX_ATTEMPTS

    use_ssl: bool = True
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """
        Validate configuration invariants.

        Raises:
            ValueError: If any invariant is violated.
        """
        if self.addressing_style not in ("path", "virtual", "auto"):
            raise ValueError(f"addressing_style must be path|virtual|auto, got {self.addressing_style!r}")
        if self.max_pool_connections <= 0:
            raise ValueError(f"max_pool_connections must be > 0, got {self.max_pool_connections}")
        if self.connect_timeout_seconds <= 0:
            raise ValueError("connect_timeout_seconds must be > 0")
        if self.read_timeout_seconds <= 0:
            raise ValueError("read_timeout_seconds must be > 0")
        if bool(self.access_key_id) != bool(self.secret_access_key):
            raise ValueError("access_key_id and secret_access_key must be set together")

    @classmethod
    def from_env(
        cls,
        prefix: str = "R2",
        environ: Optional[Mapping[str, str]] = None,
    ) -> "S3Config":
        """
        Construct configuration from environment variables.

        Environment Variables:
        - {prefix}_ENDPOINT_URL: Custom endpoint URL
        - {prefix}_ACCOUNT_ID: Cloudflare account id (derives endpoint)
        - {prefix}_REGION: Region (default: auto)
        - {prefix}_ACCESS_KEY_ID / AWS_ACCESS_KEY_ID
        - {prefix}_SECRET_ACCESS_KEY / AWS_SECRET_ACCESS_KEY
        - AWS_SESSION_TOKEN: STS session token
        - {prefix}_ADDRESSING_STYLE: path|virtual|auto (default: path)
        - {prefix}_MAX_POOL_CONNECTIONS: Pool size (default: 10)
        - {prefix}_USE_SSL / {prefix}_VERIFY_SSL: (default: true)

        Args:
            prefix: Environment variable prefix.
            environ: Mapping to read instead of os.environ.
        """
        env = os.environ if environ is None else environ

        def _get(key: str, default: str = "") -> str:
            return (env.get(f"{prefix}_{key}", default) or "").strip()

        def _get_int(key: str, default: int) -> int:
            val = _get(key)
            return int(val) if val else default

        def _get_bool(key: str, default: bool) -> bool:
            val = _get(key).lower()
            if val in ("true", "1", "yes"):
                return True
            if val in ("false", "0", "no"):
                return False
            return default

        return cls(
            region=_get("REGION", C.S3_DEFAULT_REGION) or C.S3_DEFAULT_REGION,
            endpoint_url=_get("ENDPOINT_URL") or None,
            account_id=_get("ACCOUNT_ID") or None,
            access_key_id=_get("ACCESS_KEY_ID") or env.get("AWS_ACCESS_KEY_ID") or None,
            secret_access_key=_get("SECRET_ACCESS_KEY") or env.get("AWS_SECRET_ACCESS_KEY") or None,
            session_token=env.get("AWS_SESSION_TOKEN") or None,
            addressing_style=_get("ADDRESSING_STYLE", "path") or "path",
            max_pool_connections=_get_int("MAX_POOL_CONNECTIONS", C.S3_MAX_POOL_CONNECTIONS),
            connect_timeout_seconds=_get_int("CONNECT_TIMEOUT", C.S3_CONNECT_TIMEOUT_S),
            read_timeout_seconds=_get_int("READ_TIMEOUT", C.S3_READ_TIMEOUT_S),
            max_retries=_get_int("MAX_RETRIES", C.S3_MAX_ATTEMPTS),
            use_ssl=_get_bool("USE_SSL", True),
            verify_ssl=_get_bool("VERIFY_SSL", True),
        )

    @property
    def resolved_endpoint_url(self) -> Optional[str]:
        """Explicit endpoint, else the R2 endpoint of account_id, else None (AWS)."""
        if self.endpoint_url:
            return self.endpoint_url
        if self.account_id:
            return f"https://{self.account_id}{C.R2_HOST_SUFFIX}"
        return None

    @property
    def endpoint_host(self) -> Optional[str]:
        url = self.resolved_endpoint_url
        if not url:
            return None
        return urlparse(url).hostname

    def get_session_kwargs(self) -> Dict[str, Any]:
        """Credentials for aioboto3.Session(**kwargs)."""
        kwargs: Dict[str, Any] = {}
        if self.access_key_id and self.secret_access_key:
            kwargs["aws_access_key_id"] = self.access_key_id
            kwargs["aws_secret_access_key"] = self.secret_access_key
        if self.session_token:
            kwargs["aws_session_token"] = self.session_token
        return kwargs

    def get_client_kwargs(self) -> Dict[str, Any]:
        """
        Keyword arguments for session.client('s3', **kwargs), excluding the
        botocore Config object.
        """
        kwargs: Dict[str, Any] = {
            "region_name": self.region,
            "use_ssl": self.use_ssl,
        }
        endpoint = self.resolved_endpoint_url
        if endpoint:
            kwargs["endpoint_url"] = endpoint
        if not self.verify_ssl:
            kwargs["verify"] = False
        return kwargs
