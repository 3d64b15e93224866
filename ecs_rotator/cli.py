#!/usr/bin/env python3
"""Rotate an ECS service onto its newest container image.

Usage:
    ecs-rotate [environment] [--mode pinned|floating] [--dry-run]

Pinned mode registers a new task definition revision that references the
most recently pushed ECR image and points the service at it. Floating mode
forces a new deployment so ECS re-pulls the mutable tag.

Exit codes: 0 success, 1 rotation aborted, 2 invalid configuration.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from .config import MODES, RotationConfig
from .errors import ConfigError, RotationError
from .rotation import rotate


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ecs-rotate",
        description="Roll an ECS service onto the latest image for an environment",
    )
    parser.add_argument(
        "environment",
        nargs="?",
        default=None,
        help="Target environment (default: ROTATOR_ENVIRONMENT or staging)",
    )
    parser.add_argument("--region", help="AWS region (default: ROTATOR_REGION or ca-central-1)")
    parser.add_argument("--mode", choices=MODES, help="Rotation mode (default: ROTATOR_MODE or pinned)")
    parser.add_argument("--component", help="Component name used in resource names")
    parser.add_argument("--registry-account", help="AWS account id hosting the ECR repository")
    parser.add_argument("--floating-tag", help="Mutable image tag for floating mode (default: latest)")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve the image and build the candidate without registering or updating",
    )
    parser.add_argument("--json", action="store_true", help="Print the result as JSON on stdout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        stream=sys.stderr,
    )

    try:
        config = RotationConfig.from_env(
            environment=args.environment,
            region=args.region,
            mode=args.mode,
            component=args.component,
            registry_account=args.registry_account,
            floating_tag=args.floating_tag,
        )
    except ConfigError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2

    try:
        result = rotate(config, dry_run=args.dry_run)
    except RotationError:
        return 1

    if args.json:
        print(json.dumps(result.as_dict(), indent=2, default=str))
    elif result.dry_run and result.candidate is not None:
        print(json.dumps(result.candidate, indent=2, default=str))
    elif result.dry_run:
        print(f"ECS service {result.service} would force new deployment (dry run, no changes made)")
    elif result.revision is not None:
        print(f"ECS service {result.service} updated to {result.revision.qualified}")
    else:
        print(f"ECS service {result.service} redeploying {result.task_definition or config.task_family}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
