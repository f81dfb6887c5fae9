"""
Access control: policy model, metadata-backed store, and evaluation.
"""

from objectgate.acl.models import AccessGroup, AclPolicy, AclRule, Permission, Visibility
from objectgate.acl.store import AclPolicyStore
from objectgate.acl.evaluator import AccessEvaluator, MembershipChecker, MembershipRegistry

__all__ = [
    "AccessGroup",
    "AclPolicy",
    "AclRule",
    "Permission",
    "Visibility",
    "AclPolicyStore",
    "AccessEvaluator",
    "MembershipChecker",
    "MembershipRegistry",
]
