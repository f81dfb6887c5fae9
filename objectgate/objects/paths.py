"""
Logical path resolution.

Maps a logical object path onto a backend (bucket, key) reference:

    "photo.png"          -> (default_bucket, "photo.png")
    "/photo.png"         -> (default_bucket, "photo.png")
    "/media/a/photo.png" -> ("media", "a/photo.png")

Pure and synchronous; never touches the backend.
"""

from __future__ import annotations

from typing import Optional

from objectgate.core import constants as C
from objectgate.core.errors import ConfigurationError, InvalidPathError
from objectgate.core.types import ObjectReference


class PathResolver:
    """Resolve logical paths against a default bucket."""

    __slots__ = ("_default_bucket", "_separator")

    def __init__(self, default_bucket: Optional[str], separator: str = C.PATH_SEPARATOR) -> None:
        if not separator:
            raise ValueError("separator must be non-empty")
        self._default_bucket = default_bucket or ""
        self._separator = separator

    @property
    def default_bucket(self) -> str:
        return self._default_bucket

    @property
    def separator(self) -> str:
        return self._separator

    def resolve(self, path: str) -> ObjectReference:
        """
        Resolve `path` to an ObjectReference.

        Raises:
            InvalidPathError: Empty path, or a path made only of separators.
            ConfigurationError: The path needs the default bucket and none
                is configured.
        """
        if not path:
            raise InvalidPathError.for_path(path, "empty path")

        if not path.startswith(self._separator):
            return ObjectReference(bucket=self._require_default_bucket(), key=path)

        segments = [s for s in path.split(self._separator) if s]
        if not segments:
            raise InvalidPathError.for_path(path, "no path segments")
        if len(segments) == 1:
            return ObjectReference(bucket=self._require_default_bucket(), key=segments[0])
        return ObjectReference(bucket=segments[0], key=self._separator.join(segments[1:]))

    def _require_default_bucket(self) -> str:
        if not self._default_bucket:
            raise ConfigurationError.missing_setting(
                "R2_BUCKET_NAME", "Set R2_BUCKET_NAME env var.",
            )
        return self._default_bucket


def resolve_path(path: str, default_bucket: Optional[str]) -> ObjectReference:
    """Module-level shortcut for PathResolver(default_bucket).resolve(path)."""
    return PathResolver(default_bucket).resolve(path)


def join_path(root: str, name: str, separator: str = C.PATH_SEPARATOR) -> str:
    """Join a directory-like root and a relative name with one separator."""
    if not root:
        return name
    return f"{root.rstrip(separator)}{separator}{name.lstrip(separator)}"


__all__ = ["PathResolver", "resolve_path", "join_path"]
