"""
Access evaluation.

Group membership is pluggable: a MembershipRegistry maps each access
group type tag to a MembershipChecker. Adding a group kind is one
`register` call; the evaluator itself never changes.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol, runtime_checkable

from objectgate.acl.models import AclPolicy, Permission
from objectgate.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


@runtime_checkable
class MembershipChecker(Protocol):
    """Answers whether a user belongs to a group of one type."""

    async def is_member(self, group_id: str, user_id: str) -> bool:
        ...


class MembershipRegistry:
    """Group type tag -> MembershipChecker."""

    __slots__ = ("_checkers",)

    def __init__(self, checkers: Optional[Dict[str, MembershipChecker]] = None) -> None:
        self._checkers: Dict[str, MembershipChecker] = {}
        for group_type, checker in (checkers or {}).items():
            self.register(group_type, checker)

    def register(self, group_type: str, checker: MembershipChecker) -> None:
        if not group_type:
            raise ValueError("group_type must be non-empty")
        self._checkers[group_type] = checker

    def unregister(self, group_type: str) -> None:
        self._checkers.pop(group_type, None)

    def resolve(self, group_type: str) -> MembershipChecker:
        """
        Raises:
            ConfigurationError: No checker registered for `group_type`.
        """
        checker = self._checkers.get(group_type)
        if checker is None:
            raise ConfigurationError.unknown_group_type(group_type)
        return checker

    def __contains__(self, group_type: object) -> bool:
        return group_type in self._checkers

    def __len__(self) -> int:
        return len(self._checkers)


class AccessEvaluator:
    """Decide whether a user may perform a READ or WRITE under a policy."""

    __slots__ = ("_registry",)

    def __init__(self, registry: MembershipRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> MembershipRegistry:
        return self._registry

    async def authorize(
        self,
        user_id: Optional[str],
        policy: AclPolicy,
        requested: Permission,
    ) -> bool:
        """
        Evaluate `policy` for `user_id`.

        Order: public READ, anonymous deny, owner, rules in stored order
        (first allow wins), deny.

        Raises:
            ConfigurationError: A rule names an unregistered group type.
        """
        if policy.is_public and requested is Permission.READ:
            return True
        if not user_id:
            return False
        if user_id == policy.owner:
            return True

        for rule in policy.acl_rules:
            checker = self._registry.resolve(rule.group.type)
            if not rule.permission.satisfies(requested):
                continue
            if await checker.is_member(rule.group.id, user_id):
                logger.debug(f"{rule.permission.value} granted to {user_id} via {rule.group.type}:{rule.group.id}")
                return True
        return False


__all__ = ["MembershipChecker", "MembershipRegistry", "AccessEvaluator"]
