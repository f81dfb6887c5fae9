"""
Unit Tests: Logical Path Resolution

Tests:
    - Bucket-less and bucket-qualified paths
    - Separator handling
    - Invalid paths and missing default bucket
"""

import pytest

from objectgate.core.errors import ConfigurationError, InvalidPathError
from objectgate.core.types import ObjectReference
from objectgate.objects.paths import PathResolver, join_path, resolve_path


class TestPathResolver:
    """Tests for PathResolver.resolve."""

    def setup_method(self):
        self.resolver = PathResolver("default-bucket")

    def test_relative_path_uses_default_bucket(self):
        """A path without leading separator is a key in the default bucket."""
        ref = self.resolver.resolve("photos/cat.png")
        assert ref == ObjectReference("default-bucket", "photos/cat.png")

    def test_single_segment_uses_default_bucket(self):
        ref = self.resolver.resolve("/cat.png")
        assert ref == ObjectReference("default-bucket", "cat.png")

    def test_first_segment_is_bucket(self):
        ref = self.resolver.resolve("/media/a/b/cat.png")
        assert ref.bucket == "media"
        assert ref.key == "a/b/cat.png"

    def test_empty_segments_are_dropped(self):
        ref = self.resolver.resolve("//media//a//cat.png/")
        assert ref == ObjectReference("media", "a/cat.png")

    def test_empty_path_is_invalid(self):
        with pytest.raises(InvalidPathError):
            self.resolver.resolve("")

    def test_separators_only_is_invalid(self):
        with pytest.raises(InvalidPathError) as exc_info:
            self.resolver.resolve("///")
        assert exc_info.value.http_status == 404

    def test_reference_string_resolves_back(self):
        """str(ref) is a path that resolves to the same reference."""
        ref = ObjectReference("media", "private/uploads/abc")
        assert self.resolver.resolve(str(ref)) == ref

    def test_missing_default_bucket(self):
        """Only paths that need the default bucket fail."""
        resolver = PathResolver("")
        with pytest.raises(ConfigurationError):
            resolver.resolve("cat.png")
        with pytest.raises(ConfigurationError):
            resolver.resolve("/cat.png")
        assert resolver.resolve("/media/cat.png") == ObjectReference("media", "cat.png")

    def test_custom_separator(self):
        resolver = PathResolver("dflt", separator=":")
        assert resolver.resolve(":media:a:b") == ObjectReference("media", "a:b")

    def test_empty_separator_rejected(self):
        with pytest.raises(ValueError):
            PathResolver("dflt", separator="")


class TestHelpers:
    """Tests for module-level helpers."""

    def test_resolve_path(self):
        assert resolve_path("/media/x", "dflt") == ObjectReference("media", "x")
        assert resolve_path("x", "dflt") == ObjectReference("dflt", "x")

    def test_join_path(self):
        assert join_path("/media/private", "uploads/1") == "/media/private/uploads/1"
        assert join_path("/media/private/", "/uploads/1") == "/media/private/uploads/1"
        assert join_path("", "a") == "a"
