"""
objectgate: Access-Controlled Object Storage Gateway

Sits between an application and an S3-compatible backend (AWS S3,
Cloudflare R2, MinIO):
- Logical path resolution: "/bucket/key", "key" and entity paths
- Access-control policies embedded in object metadata
- Time-limited, method-scoped capability URLs for upload/download
- One async byte-stream contract over heterogeneous response bodies
- Backpressure-aware download streaming into a response sink
"""

__version__ = "1.0.0"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================
from objectgate.core.types import (
    Result,
    Ok,
    Err,
    ObjectReference,
    ObjectMetadata,
    HttpMethod,
    SignedUrlRequest,
)
from objectgate.core.errors import (
    ErrorCode,
    GatewayError,
    InvalidPathError,
    NotFoundError,
    UnsupportedMethodError,
    BackendError,
    ConcurrentModificationError,
    ConfigurationError,
)
from objectgate.core.config import GatewayConfig

# Access control
from objectgate.acl import (
    AccessEvaluator,
    AccessGroup,
    AclPolicy,
    AclPolicyStore,
    AclRule,
    MembershipChecker,
    MembershipRegistry,
    Permission,
    Visibility,
)

# Objects
from objectgate.objects import (
    ByteStream,
    ObjectStorageService,
    PathResolver,
    ResponseSink,
    SignedUrlIssuer,
    StreamingResponse,
    adapt_body,
    resolve_path,
)

# Backends
from objectgate.storage import (
    InMemoryBackend,
    ObjectBackend,
    S3Backend,
    S3Config,
    create_backend,
)

__all__ = [
    "__version__",
    # Core
    "Result",
    "Ok",
    "Err",
    "ObjectReference",
    "ObjectMetadata",
    "HttpMethod",
    "SignedUrlRequest",
    "ErrorCode",
    "GatewayError",
    "InvalidPathError",
    "NotFoundError",
    "UnsupportedMethodError",
    "BackendError",
    "ConcurrentModificationError",
    "ConfigurationError",
    "GatewayConfig",
    # Access control
    "AccessEvaluator",
    "AccessGroup",
    "AclPolicy",
    "AclPolicyStore",
    "AclRule",
    "MembershipChecker",
    "MembershipRegistry",
    "Permission",
    "Visibility",
    # Objects
    "ByteStream",
    "ObjectStorageService",
    "PathResolver",
    "ResponseSink",
    "SignedUrlIssuer",
    "StreamingResponse",
    "adapt_body",
    "resolve_path",
    # Backends
    "InMemoryBackend",
    "ObjectBackend",
    "S3Backend",
    "S3Config",
    "create_backend",
]
