"""
Access-control policy model and its JSON wire format.

A policy lives in one reserved custom-metadata field of the object it
governs:

    {"owner": "user-1", "visibility": "private",
     "aclRules": [{"group": {"type": "team", "id": "t-9"}, "permission": "read"}]}

Serialization is compact JSON; a missing "aclRules" parses as no rules.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


class Permission(str, Enum):
    """Access level; WRITE implies READ."""

    READ = "read"
    WRITE = "write"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def satisfies(self, requested: Permission) -> bool:
        """True when holding this permission grants `requested`."""
        return self.rank >= requested.rank


_RANKS = {Permission.READ: 1, Permission.WRITE: 2}


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True, slots=True)
class AccessGroup:
    """Group reference; membership is resolved by the checker for `type`."""

    type: str
    id: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "id": self.id}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AccessGroup:
        group_type, group_id = data["type"], data["id"]
        if not isinstance(group_type, str) or not isinstance(group_id, str):
            raise ValueError("group type and id must be strings")
        return cls(type=group_type, id=group_id)


@dataclass(frozen=True, slots=True)
class AclRule:
    group: AccessGroup
    permission: Permission

    def to_dict(self) -> dict[str, Any]:
        return {"group": self.group.to_dict(), "permission": self.permission.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AclRule:
        return cls(
            group=AccessGroup.from_dict(data["group"]),
            permission=Permission(data["permission"]),
        )


@dataclass(frozen=True, slots=True)
class AclPolicy:
    """
    Access policy of one object.

    Attributes:
        owner: User id with full access.
        visibility: PUBLIC grants READ to everyone, including anonymous
            callers.
        acl_rules: Rules evaluated in this order.
    """

    owner: str
    visibility: Visibility = Visibility.PRIVATE
    acl_rules: tuple[AclRule, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.owner, str) or not self.owner:
            raise ValueError("policy owner must be a non-empty string")
        # Accept any sequence of rules, store a tuple
        if not isinstance(self.acl_rules, tuple):
            object.__setattr__(self, "acl_rules", tuple(self.acl_rules))

    @property
    def is_public(self) -> bool:
        return self.visibility is Visibility.PUBLIC

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "visibility": self.visibility.value,
            "aclRules": [rule.to_dict() for rule in self.acl_rules],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AclPolicy:
        """
        Raises:
            ValueError, KeyError, TypeError: Malformed policy data.
        """
        if not isinstance(data, Mapping):
            raise TypeError("policy must be a JSON object")
        rules = data.get("aclRules")
        if rules is None:
            rules = []
        if not isinstance(rules, list):
            raise TypeError("aclRules must be a list")
        return cls(
            owner=data["owner"],
            visibility=Visibility(data["visibility"]),
            acl_rules=tuple(AclRule.from_dict(rule) for rule in rules),
        )

    @classmethod
    def from_json(cls, raw: str) -> AclPolicy:
        return cls.from_dict(json.loads(raw))


__all__ = ["Permission", "Visibility", "AccessGroup", "AclRule", "AclPolicy"]
