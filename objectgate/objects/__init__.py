"""
Objects module: path resolution, capability URLs, body streaming and the
service that orchestrates them.
"""

from objectgate.objects.paths import PathResolver, join_path, resolve_path
from objectgate.objects.streams import ByteStream, adapt_body
from objectgate.objects.signing import SignedUrlIssuer, parse_method
from objectgate.objects.sink import ResponseSink, StreamingResponse
from objectgate.objects.service import ObjectStorageService

__all__ = [
    "PathResolver",
    "join_path",
    "resolve_path",
    "ByteStream",
    "adapt_body",
    "SignedUrlIssuer",
    "parse_method",
    "ResponseSink",
    "StreamingResponse",
    "ObjectStorageService",
]
