"""
Integration Tests: Operator CLI (in-memory backend)
"""

import asyncio
import json

import pytest

from objectgate.__main__ import build_parser, main
from objectgate.acl.models import AclPolicy, Permission, Visibility
from objectgate.core.types import ObjectReference
from objectgate.storage.memory_backend import InMemoryBackend

ENTITY = ObjectReference("media", "private/uploads/abc")


@pytest.fixture
def cli_env(monkeypatch, restore_logging):
    for name in (
        "R2_ACCESS_KEY_ID", "R2_SECRET_ACCESS_KEY", "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY", "AWS_SESSION_TOKEN", "R2_ENDPOINT_URL",
        "OBJECTGATE_UPLOAD_URL_TTL", "OBJECTGATE_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("R2_BUCKET_NAME", "media")
    monkeypatch.setenv("PRIVATE_OBJECT_DIR", "/media/private")
    monkeypatch.setenv("R2_ACCOUNT_ID", "acct123")
    monkeypatch.setenv("OBJECTGATE_LOG_JSON", "false")
    return monkeypatch


@pytest.fixture
def memory():
    backend = InMemoryBackend()
    asyncio.run(backend.put_object(ENTITY, b"data", content_type="text/plain"))
    return backend


def _stdout_json(capsys):
    return json.loads(capsys.readouterr().out)


class TestParser:
    def test_rule_parsing(self):
        args = build_parser().parse_args([
            "policy", "set", "/objects/uploads/abc",
            "--owner", "u1", "--rule", "team:t-1:READ", "--rule", "org:a:b:write",
        ])
        assert [(r.group.type, r.group.id, r.permission) for r in args.rules] == [
            ("team", "t-1", Permission.READ),
            ("org", "a:b", Permission.WRITE),
        ]

    @pytest.mark.parametrize("rule", ["team", "team:read", "team:t-1:admin"])
    def test_bad_rule(self, rule):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["policy", "set", "/x/y", "--owner", "u", "--rule", rule])


class TestCommands:
    """Tests for command output and exit codes."""

    def test_resolve(self, cli_env, capsys):
        assert main(["resolve", "/media/public/logo.png"], backend=InMemoryBackend()) == 0
        assert _stdout_json(capsys) == {"bucket": "media", "key": "public/logo.png"}

    def test_resolve_invalid_path(self, cli_env, capsys):
        assert main(["resolve", "///"], backend=InMemoryBackend()) == 1
        assert json.loads(capsys.readouterr().err)["code"] == "INVALID_PATH"

    def test_normalize(self, cli_env, capsys):
        url = "https://acct123.r2.cloudflarestorage.com/media/private/uploads/abc"
        assert main(["normalize", url], backend=InMemoryBackend()) == 0
        assert _stdout_json(capsys) == {"path": "/objects/uploads/abc"}

    def test_upload_url(self, cli_env, capsys):
        assert main(["upload-url"], backend=InMemoryBackend()) == 0
        assert "X-Method=PUT" in _stdout_json(capsys)["url"]

    def test_download_url(self, cli_env, memory, capsys):
        assert main(["download-url", "/objects/uploads/abc", "--ttl", "60"], backend=memory) == 0
        assert _stdout_json(capsys)["url"].startswith("memory://media/private/uploads/abc?")

    def test_download_url_missing(self, cli_env, capsys):
        assert main(["download-url", "/objects/uploads/nope"], backend=InMemoryBackend()) == 1
        assert json.loads(capsys.readouterr().err)["code"] == "OBJECT_NOT_FOUND"

    def test_exists(self, cli_env, memory, capsys):
        assert main(["exists", "/media/private/uploads/abc"], backend=memory) == 0
        assert _stdout_json(capsys) == {"exists": True}
        assert main(["exists", "/media/private/uploads/zzz"], backend=memory) == 1
        assert _stdout_json(capsys) == {"exists": False}

    def test_exists_entity_path(self, cli_env, memory, capsys):
        assert main(["exists", "/objects/uploads/abc"], backend=memory) == 0
        assert _stdout_json(capsys) == {"exists": True}
        assert main(["exists", "/objects/uploads/zzz"], backend=memory) == 1
        assert _stdout_json(capsys) == {"exists": False}

    def test_policy_set_and_get(self, cli_env, memory, capsys):
        code = main([
            "policy", "set", "/objects/uploads/abc",
            "--owner", "u1", "--visibility", "public", "--rule", "team:t-1:write",
        ], backend=memory)
        assert code == 0
        capsys.readouterr()

        assert main(["policy", "get", "/objects/uploads/abc"], backend=memory) == 0
        policy = AclPolicy.from_dict(_stdout_json(capsys))
        assert policy.owner == "u1"
        assert policy.visibility is Visibility.PUBLIC
        assert policy.acl_rules[0].permission is Permission.WRITE

    def test_policy_get_none(self, cli_env, memory, capsys):
        assert main(["policy", "get", "/objects/uploads/abc"], backend=memory) == 0
        assert _stdout_json(capsys) is None


class TestConfigurationErrors:
    def test_check_config_ok(self, cli_env, capsys):
        assert main(["check-config"]) == 0
        assert _stdout_json(capsys) == {"ok": True, "endpoint": "https://acct123.r2.cloudflarestorage.com"}

    def test_check_config_missing_bucket(self, cli_env, capsys):
        cli_env.delenv("R2_BUCKET_NAME")
        assert main(["check-config"]) == 2
        assert _stdout_json(capsys)["ok"] is False

    def test_missing_private_dir(self, cli_env, capsys):
        cli_env.delenv("PRIVATE_OBJECT_DIR")
        assert main(["upload-url"], backend=InMemoryBackend()) == 2

    def test_bad_integer_setting(self, cli_env, capsys):
        cli_env.setenv("OBJECTGATE_UPLOAD_URL_TTL", "soon")
        assert main(["check-config"]) == 2

    def test_bad_log_level(self, cli_env, capsys):
        assert main(["--log-level", "loud", "check-config"]) == 2
