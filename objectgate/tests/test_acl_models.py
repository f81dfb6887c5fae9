"""
Unit Tests: ACL Policy Model

Tests:
    - Permission lattice
    - JSON wire format
    - Malformed policy data
"""

import json

import pytest

from objectgate.acl.models import AccessGroup, AclPolicy, AclRule, Permission, Visibility


class TestPermission:
    """Tests for Permission.satisfies."""

    def test_write_implies_read(self):
        assert Permission.WRITE.satisfies(Permission.READ)
        assert Permission.WRITE.satisfies(Permission.WRITE)

    def test_read_does_not_imply_write(self):
        assert Permission.READ.satisfies(Permission.READ)
        assert not Permission.READ.satisfies(Permission.WRITE)


class TestAclPolicyJson:
    """Tests for the metadata wire format."""

    def test_to_json_wire_shape(self):
        policy = AclPolicy(
            owner="user-1",
            visibility=Visibility.PRIVATE,
            acl_rules=(AclRule(AccessGroup("team", "t-9"), Permission.READ),),
        )
        raw = policy.to_json()

        assert " " not in raw
        assert json.loads(raw) == {
            "owner": "user-1",
            "visibility": "private",
            "aclRules": [{"group": {"type": "team", "id": "t-9"}, "permission": "read"}],
        }

    def test_from_json(self):
        raw = (
            '{"owner":"u","visibility":"public",'
            '"aclRules":[{"group":{"type":"team","id":"a"},"permission":"write"},'
            '{"group":{"type":"org","id":"b"},"permission":"read"}]}'
        )
        policy = AclPolicy.from_json(raw)

        assert policy.owner == "u"
        assert policy.is_public
        assert [r.group.type for r in policy.acl_rules] == ["team", "org"]
        assert policy.acl_rules[0].permission is Permission.WRITE
        assert AclPolicy.from_json(policy.to_json()) == policy

    def test_missing_rules_is_empty(self):
        policy = AclPolicy.from_json('{"owner":"u","visibility":"private"}')
        assert policy.acl_rules == ()

    @pytest.mark.parametrize("raw", [
        "not json",
        "[]",
        '{"visibility":"private"}',
        '{"owner":"u","visibility":"secret"}',
        '{"owner":"","visibility":"private"}',
        '{"owner":"u","visibility":"private","aclRules":{}}',
        '{"owner":"u","visibility":"private","aclRules":["x"]}',
        '{"owner":"u","visibility":"private","aclRules":[{"group":{"type":"t"},"permission":"read"}]}',
        '{"owner":"u","visibility":"private","aclRules":[{"group":{"type":"t","id":"1"},"permission":"admin"}]}',
    ])
    def test_malformed(self, raw):
        with pytest.raises((ValueError, KeyError, TypeError)):
            AclPolicy.from_json(raw)


class TestAclPolicy:
    """Tests for policy construction."""

    def test_owner_required(self):
        with pytest.raises(ValueError):
            AclPolicy(owner="")

    def test_rules_stored_as_tuple(self):
        rule = AclRule(AccessGroup("team", "a"), Permission.READ)
        policy = AclPolicy(owner="u", acl_rules=[rule])
        assert policy.acl_rules == (rule,)

    def test_default_visibility_private(self):
        assert not AclPolicy(owner="u").is_public
