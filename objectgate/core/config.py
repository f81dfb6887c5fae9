"""
Configuration Management for the Object Gateway

Provides validated configuration with sensible defaults, loaded once at
process start and read-only thereafter.

Design:
- Immutable after construction
- Missing addressing settings are tolerated at load time and reported by
  `validate()`; the components that need them raise ConfigurationError
- Type-safe with dataclasses
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from objectgate.core import constants as C
from objectgate.core.errors import ConfigurationError
from objectgate.core.types import Err, Ok, Result


@dataclass(frozen=True)
class StreamingConfig:
    """Download streaming configuration."""

    chunk_size_bytes: int = C.STREAM_CHUNK_SIZE_BYTES
    high_water_chunks: int = C.STREAM_HIGH_WATER_CHUNKS


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration."""

    log_level: str = "INFO"
    log_json: bool = True


@dataclass(frozen=True)
class GatewayConfig:
    """
    Root configuration for the gateway.

    Attributes:
        default_bucket: Bucket used for paths that do not name one.
        private_object_dir: Private object root, e.g. "/bucket/private".
        public_search_paths: Public roots searched in order.
        public_base_url: Optional public URL the bucket is served from.
        entity_prefix: Logical prefix of entity paths.
        upload_url_ttl_seconds: Lifetime of upload capability URLs.
        download_cache_ttl_seconds: max-age sent with downloads.
        policy_write_retries: Retries of a conflicting policy write.
    """

    default_bucket: str = ""
    private_object_dir: str = ""
    public_search_paths: tuple[str, ...] = ()
    public_base_url: str = ""
    entity_prefix: str = C.ENTITY_PREFIX
    upload_url_ttl_seconds: int = C.UPLOAD_URL_TTL_S
    download_cache_ttl_seconds: int = C.DOWNLOAD_CACHE_TTL_S
    policy_write_retries: int = C.POLICY_WRITE_RETRIES
    streaming: StreamingConfig = field(default_factory=StreamingConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Result[GatewayConfig, str]:
        """
        Load configuration from environment variables.

        Addressing settings keep the names of the deployment
        (R2_BUCKET_NAME, PRIVATE_OBJECT_DIR, PUBLIC_OBJECT_SEARCH_PATHS,
        R2_PUBLIC_URL); tuning knobs are prefixed with OBJECTGATE_.
        """
        env = os.environ if environ is None else environ

        def _get(key: str, default: str = "") -> str:
            return (env.get(key, default) or "").strip()

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

        try:
            streaming = StreamingConfig(
                chunk_size_bytes=_get_int("OBJECTGATE_STREAM_CHUNK_SIZE", C.STREAM_CHUNK_SIZE_BYTES),
                high_water_chunks=_get_int("OBJECTGATE_STREAM_HIGH_WATER", C.STREAM_HIGH_WATER_CHUNKS),
            )
            observability = ObservabilityConfig(
                log_level=_get("OBJECTGATE_LOG_LEVEL", "INFO").upper() or "INFO",
                log_json=_get_bool("OBJECTGATE_LOG_JSON", True),
            )
            return Ok(cls(
                default_bucket=_get("R2_BUCKET_NAME"),
                private_object_dir=_get("PRIVATE_OBJECT_DIR"),
                public_search_paths=parse_search_paths(_get("PUBLIC_OBJECT_SEARCH_PATHS")),
                public_base_url=_get("R2_PUBLIC_URL"),
                entity_prefix=_get("OBJECTGATE_ENTITY_PREFIX", C.ENTITY_PREFIX) or C.ENTITY_PREFIX,
                upload_url_ttl_seconds=_get_int("OBJECTGATE_UPLOAD_URL_TTL", C.UPLOAD_URL_TTL_S),
                download_cache_ttl_seconds=_get_int("OBJECTGATE_DOWNLOAD_CACHE_TTL", C.DOWNLOAD_CACHE_TTL_S),
                policy_write_retries=_get_int("OBJECTGATE_POLICY_WRITE_RETRIES", C.POLICY_WRITE_RETRIES),
                streaming=streaming,
                observability=observability,
            ))
        except (ValueError, TypeError) as e:
            return Err(f"Configuration error: {e}")

    def validate(self) -> Result[None, str]:
        """Validate configuration invariants."""
        if not self.default_bucket:
            return Err("R2_BUCKET_NAME not set")
        if not self.private_object_dir:
            return Err("PRIVATE_OBJECT_DIR not set")
        if not self.entity_prefix.startswith("/") or not self.entity_prefix.endswith("/"):
            return Err(f"entity_prefix must start and end with '/', got {self.entity_prefix!r}")
        if not (1 <= self.upload_url_ttl_seconds <= C.MAX_SIGNED_URL_TTL_S):
            return Err(f"upload_url_ttl_seconds must be in [1, {C.MAX_SIGNED_URL_TTL_S}]")
        if self.download_cache_ttl_seconds < 0:
            return Err("download_cache_ttl_seconds must be >= 0")
        if self.policy_write_retries < 0:
            return Err("policy_write_retries must be >= 0")
        if self.streaming.chunk_size_bytes <= 0 or self.streaming.high_water_chunks <= 0:
            return Err("streaming chunk size and high water mark must be > 0")
        return Ok(None)

    def require_default_bucket(self) -> str:
        if not self.default_bucket:
            raise ConfigurationError.missing_setting(
                "R2_BUCKET_NAME", "Set R2_BUCKET_NAME env var.",
            )
        return self.default_bucket

    def require_private_object_dir(self) -> str:
        if not self.private_object_dir:
            raise ConfigurationError.missing_setting(
                "PRIVATE_OBJECT_DIR", "Set PRIVATE_OBJECT_DIR env var.",
            )
        return self.private_object_dir

    def require_public_search_paths(self) -> tuple[str, ...]:
        if not self.public_search_paths:
            raise ConfigurationError.missing_setting(
                "PUBLIC_OBJECT_SEARCH_PATHS",
                "Set PUBLIC_OBJECT_SEARCH_PATHS env var (comma-separated paths).",
            )
        return self.public_search_paths


def parse_search_paths(raw: str) -> tuple[str, ...]:
    """Split a comma-separated list, dropping blanks and duplicates (first wins)."""
    seen: dict[str, None] = {}
    for part in raw.split(","):
        path = part.strip()
        if path:
            seen.setdefault(path, None)
    return tuple(seen)
