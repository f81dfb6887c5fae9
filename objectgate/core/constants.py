"""
Gateway-Wide Constants

All magic numbers and configuration defaults centralized here.
"""

from typing import Final

# =============================================================================
# SIZE AND TIME UNITS
# =============================================================================
KB: Final[int] = 1024
MB: Final[int] = 1024 * KB

MINUTE_S: Final[int] = 60
HOUR_S: Final[int] = 60 * MINUTE_S
DAY_S: Final[int] = 24 * HOUR_S

# =============================================================================
# ADDRESSING
# =============================================================================
PATH_SEPARATOR: Final[str] = "/"
ENTITY_PREFIX: Final[str] = "/objects/"
UPLOADS_SUBDIR: Final[str] = "uploads"
DEFAULT_CONTENT_TYPE: Final[str] = "application/octet-stream"

# Hosts whose absolute URLs are treated as backend-native
R2_HOST_SUFFIX: Final[str] = ".r2.cloudflarestorage.com"

# =============================================================================
# CAPABILITY URLS
# =============================================================================
UPLOAD_URL_TTL_S: Final[int] = 15 * MINUTE_S
# SigV4 presigned URLs cannot outlive 7 days
MAX_SIGNED_URL_TTL_S: Final[int] = 7 * DAY_S

# =============================================================================
# DOWNLOADS
# =============================================================================
DOWNLOAD_CACHE_TTL_S: Final[int] = HOUR_S
STREAM_CHUNK_SIZE_BYTES: Final[int] = 64 * KB
STREAM_HIGH_WATER_CHUNKS: Final[int] = 4
SINK_HIGH_WATER_CHUNKS: Final[int] = 8

# =============================================================================
# ACCESS CONTROL
# =============================================================================
ACL_POLICY_METADATA_KEY: Final[str] = "custom-acl-policy"
POLICY_WRITE_RETRIES: Final[int] = 3
POLICY_WRITE_BASE_DELAY_MS: Final[int] = 50
POLICY_WRITE_MAX_DELAY_MS: Final[int] = 2000

# =============================================================================
# BACKEND CLIENT
# =============================================================================
S3_DEFAULT_REGION: Final[str] = "auto"
S3_MAX_POOL_CONNECTIONS: Final[int] = 10
S3_CONNECT_TIMEOUT_S: Final[int] = 5
S3_READ_TIMEOUT_S: Final[int] = 60
S3_MAX_ATTEMPTS: Final[int] = 3
