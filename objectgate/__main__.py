#!/usr/bin/env python3
"""
objectgate operator CLI.

Usage:
    python -m objectgate resolve PATH
    python -m objectgate normalize RAW_PATH_OR_URL
    python -m objectgate upload-url
    python -m objectgate download-url PATH [--ttl SECONDS]
    python -m objectgate exists PATH
    python -m objectgate policy get PATH
    python -m objectgate policy set PATH --owner USER --visibility public|private
                                    [--rule TYPE:ID:PERMISSION ...]
    python -m objectgate check-config

Configuration comes from the environment (R2_BUCKET_NAME,
PRIVATE_OBJECT_DIR, R2_ENDPOINT_URL, ...). Output is JSON on stdout.

Exit codes:
    0: Success
    1: Request failed (not found, backend error, ...)
    2: Configuration or usage error
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Optional, Sequence

from objectgate.acl.models import AccessGroup, AclPolicy, AclRule, Permission, Visibility
from objectgate.core.config import GatewayConfig
from objectgate.core.errors import ConfigurationError, GatewayError, NotFoundError
from objectgate.core.types import ObjectReference
from objectgate.objects.service import ObjectStorageService
from objectgate.observability.logging import setup_logging
from objectgate.storage import create_backend
from objectgate.storage.config import S3Config
from objectgate.storage.protocols import ObjectBackend
from objectgate.storage.s3_backend import S3Backend

# Commands that never touch the backend
OFFLINE_COMMANDS = frozenset({"resolve", "normalize", "check-config"})


def _output_json(data: Any) -> None:
    print(json.dumps(data, sort_keys=True, indent=2))


def _parse_rule(raw: str) -> AclRule:
    """TYPE:ID:PERMISSION, e.g. team:t-42:read."""
    parts = raw.rsplit(":", 1)
    if len(parts) != 2 or ":" not in parts[0]:
        raise argparse.ArgumentTypeError(f"rule must be TYPE:ID:PERMISSION, got {raw!r}")
    group, permission = parts
    group_type, group_id = group.split(":", 1)
    try:
        return AclRule(group=AccessGroup(type=group_type, id=group_id), permission=Permission(permission.lower()))
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="objectgate", description="Object gateway operator tools")
    parser.add_argument("--log-level", default=None, help="Override OBJECTGATE_LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("resolve", help="Resolve a logical path to bucket/key")
    p.add_argument("path")

    p = sub.add_parser("normalize", help="Normalize a backend URL to an entity path")
    p.add_argument("raw")

    sub.add_parser("upload-url", help="Issue an upload capability URL")

    p = sub.add_parser("download-url", help="Issue a download capability URL")
    p.add_argument("path")
    p.add_argument("--ttl", type=int, default=None)

    p = sub.add_parser("exists", help="Check whether an object exists")
    p.add_argument("path")

    policy = sub.add_parser("policy", help="Read or write an object's ACL policy")
    policy_sub = policy.add_subparsers(dest="policy_command", required=True)
    p = policy_sub.add_parser("get")
    p.add_argument("path")
    p = policy_sub.add_parser("set")
    p.add_argument("path")
    p.add_argument("--owner", required=True)
    p.add_argument("--visibility", choices=[v.value for v in Visibility], default=Visibility.PRIVATE.value)
    p.add_argument("--rule", action="append", type=_parse_rule, default=[], dest="rules")

    sub.add_parser("check-config", help="Validate configuration")
    return parser


async def _target(service: ObjectStorageService, path: str) -> ObjectReference:
    """Entity paths and backend URLs go through the entity mapping."""
    normalized = service.normalize_path(path)
    if normalized.startswith(service.config.entity_prefix):
        return await service.resolve_entity(normalized)
    return service.resolve(normalized)


async def _dispatch(
    args: argparse.Namespace,
    config: GatewayConfig,
    backend: Optional[ObjectBackend],
) -> int:
    s3_config = S3Config.from_env()

    if args.command == "check-config":
        validation = config.validate()
        if validation.is_err():
            _output_json({"ok": False, "error": validation.error})
            return 2
        _output_json({"ok": True, "endpoint": s3_config.resolved_endpoint_url})
        return 0

    if backend is None:
        if args.command in OFFLINE_COMMANDS:
            backend = S3Backend(s3_config)
        else:
            backend = await create_backend("s3", s3_config)

    service = ObjectStorageService.from_config(config, backend, endpoint_host=s3_config.endpoint_host)
    try:
        if args.command == "resolve":
            ref = service.resolve(args.path)
            _output_json({"bucket": ref.bucket, "key": ref.key})
        elif args.command == "normalize":
            _output_json({"path": service.normalize_path(args.raw)})
        elif args.command == "upload-url":
            _output_json({"url": await service.issue_upload_capability()})
        elif args.command == "download-url":
            ref = await _target(service, args.path)
            _output_json({"url": await service.issue_download_capability(ref, args.ttl)})
        elif args.command == "exists":
            try:
                exists = await service.object_exists(await _target(service, args.path))
            except NotFoundError:
                exists = False
            _output_json({"exists": exists})
            return 0 if exists else 1
        elif args.policy_command == "get":
            policy = await service.get_policy(await _target(service, args.path))
            _output_json(policy.to_dict() if policy is not None else None)
        else:
            policy = AclPolicy(owner=args.owner, visibility=Visibility(args.visibility), acl_rules=tuple(args.rules))
            ref = await _target(service, args.path)
            await service.set_policy(ref, policy)
            _output_json({"bucket": ref.bucket, "key": ref.key, "policy": policy.to_dict()})
        return 0
    finally:
        await service.close()


def main(argv: Optional[Sequence[str]] = None, backend: Optional[ObjectBackend] = None) -> int:
    """Entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)

    loaded = GatewayConfig.from_env()
    if loaded.is_err():
        print(json.dumps({"error": loaded.error}), file=sys.stderr)
        return 2
    config = loaded.unwrap()

    try:
        setup_logging(
            args.log_level or config.observability.log_level,
            json_output=config.observability.log_json,
        )
        return asyncio.run(_dispatch(args, config, backend))
    except ConfigurationError as e:
        print(json.dumps(e.to_dict(), default=str), file=sys.stderr)
        return 2
    except GatewayError as e:
        print(json.dumps(e.to_dict(), default=str), file=sys.stderr)
        return 1
    except ValueError as e:
        print(json.dumps({"error": str(e)}), file=sys.stderr)
        return 2


def run() -> None:
    """Synchronous entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
