"""lambda_function.py

EventBridge-triggered Lambda that rotates an ECS service after an image push.

Triggered by an EventBridge rule on ECR Image Action events (action-type
PUSH, result SUCCESS). The environment is recovered from the repository
name (<component>-<environment>) and the configured mode is applied.

Direct invocation with {"environment": "prod"} (optionally "mode" and
"dry_run") rotates without an ECR event.

Environment variables: see ecs_rotator.config.

Raises on a failed rotation so the invocation is recorded as an error.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from .config import RotationConfig, allowed_environments, environment_from_namespace
from .errors import ConfigError
from .rotation import rotate

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def _skip(reason: str, **extra: Any) -> Dict[str, Any]:
    logger.info(f"[SKIP] {reason}")
    return {"status": "skipped", "reason": reason, **extra}


def _handle_ecr_event(event: Dict[str, Any]) -> Dict[str, Any]:
    detail = event.get("detail") or {}
    action = detail.get("action-type", "")
    outcome = detail.get("result", "")
    repository = detail.get("repository-name", "")

    if action != "PUSH" or outcome != "SUCCESS":
        return _skip(f"ECR action {action or '?'}/{outcome or '?'} is not a successful push", repository=repository)

    component = RotationConfig.from_env().component
    allowed = allowed_environments()
    environment = environment_from_namespace(repository, component, allowed)
    if not environment:
        return _skip(
            f"Repository {repository} does not match {component}-<env> for env in {', '.join(allowed) or '(none)'}",
            repository=repository,
        )

    logger.info(f"[INFO] Push of {repository}:{detail.get('image-tag', '?')} -> rotating {environment}")
    config = RotationConfig.from_env(environment=environment)
    result = rotate(config)
    return {"status": "rotated", **result.as_dict()}


def _as_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no", ""):
            return False
    raise ConfigError(f"dry_run must be a boolean, got {value!r}")


def _handle_direct(event: Dict[str, Any]) -> Dict[str, Any]:
    config = RotationConfig.from_env(
        environment=event.get("environment"),
        mode=event.get("mode"),
    )
    result = rotate(config, dry_run=_as_bool(event.get("dry_run")))
    return {"status": "rotated", **result.as_dict()}


# ---------------------------------------------------------------------------
# Lambda handler
# ---------------------------------------------------------------------------


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    logger.info("ecs_rotator: received event")
    logger.info(json.dumps(event, default=str)[:2000])

    if event.get("source") == "aws.ecr":
        return _handle_ecr_event(event)
    if "environment" in event:
        return _handle_direct(event)
    return _skip("Unrecognized event")
