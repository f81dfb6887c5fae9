"""
Shared fixtures: in-memory backend, gateway configuration, membership
registry with a recording group checker, and a wired service.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Set, Tuple

import pytest

from objectgate.acl.evaluator import MembershipRegistry
from objectgate.core.config import GatewayConfig
from objectgate.core.types import ObjectReference
from objectgate.objects.service import ObjectStorageService
from objectgate.objects.sink import StreamingResponse
from objectgate.reliability.retry import RetryPolicy
from objectgate.storage.memory_backend import InMemoryBackend


# =============================================================================
# TEST UTILITIES
# =============================================================================

def assert_ok(result, message: str = "Expected Ok result"):
    """Assert that result is Ok."""
    if result.is_err():
        raise AssertionError(f"{message}: {result.error}")
    return result.unwrap()


def assert_err(result, message: str = "Expected Err result"):
    """Assert that result is Err."""
    if result.is_ok():
        raise AssertionError(f"{message}: Got Ok({result.unwrap()})")
    return result.error


class FakeGroupChecker:
    """Membership from a static table; records every lookup."""

    def __init__(self, members: Dict[str, Set[str]]) -> None:
        self.members = members
        self.calls: List[Tuple[str, str]] = []

    async def is_member(self, group_id: str, user_id: str) -> bool:
        self.calls.append((group_id, user_id))
        return user_id in self.members.get(group_id, set())


def fast_retry(max_retries: int = 3) -> RetryPolicy:
    return RetryPolicy(max_retries=max_retries, base_delay_ms=1, max_delay_ms=2)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def backend():
    return InMemoryBackend(chunk_size=4)


@pytest.fixture
def config():
    return GatewayConfig(
        default_bucket="default-bucket",
        private_object_dir="/media/private",
        public_search_paths=("/media/public", "/assets/shared"),
        public_base_url="https://cdn.example.com",
    )


@pytest.fixture
def team_checker():
    return FakeGroupChecker({"editors": {"alice"}, "viewers": {"bob", "alice"}})


@pytest.fixture
def registry(team_checker):
    reg = MembershipRegistry()
    reg.register("team", team_checker)
    return reg


@pytest.fixture
def service(config, backend, registry):
    return ObjectStorageService(
        config,
        backend,
        registry,
        endpoint_host="minio.local",
        retry_policy=fast_retry(),
    )


@pytest.fixture
def sink():
    return StreamingResponse()


@pytest.fixture
def entity_ref():
    """Where "/objects/uploads/abc" lives under the private root."""
    return ObjectReference(bucket="media", key="private/uploads/abc")


@pytest.fixture
def restore_logging():
    """Undo root logger changes made by setup_logging()."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
