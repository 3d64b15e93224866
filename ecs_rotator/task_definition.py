"""task_definition.py - Build a candidate task definition from the live one.

The registered document is treated as a generic dict: the primary
container's image is replaced, the fields ECS assigns on registration are
removed, and every other key is passed through untouched so new control
plane fields survive without code changes.

Only ``containerDefinitions[0]`` is rewritten. Sidecar containers keep
whatever image they were registered with.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Union

from botocore.exceptions import BotoCoreError, ClientError

from .errors import SpecificationFetchFailed
from .image_locator import ImageReference

logger = logging.getLogger(__name__)

SERVER_ASSIGNED_FIELDS = (
    "taskDefinitionArn",
    "revision",
    "status",
    "requiresAttributes",
    "compatibilities",
    "registeredAt",
    "registeredBy",
)


def fetch_task_definition(ecs: Any, family: str) -> Dict[str, Any]:
    """Read the current registered task definition for ``family``."""
    try:
        resp = ecs.describe_task_definition(taskDefinition=family)
    except (ClientError, BotoCoreError) as exc:
        raise SpecificationFetchFailed(f"Failed to describe task definition {family}: {exc}") from exc

    task_def = resp.get("taskDefinition")
    if not isinstance(task_def, dict):
        raise SpecificationFetchFailed(f"No task definition returned for {family}")
    logger.info(
        f"[INFO] Current task definition: {task_def.get('family', family)}:{task_def.get('revision', '?')}"
    )
    return task_def


def build_candidate(registered: Dict[str, Any], image: Union[ImageReference, str]) -> Dict[str, Any]:
    """Return a new candidate document; ``registered`` is not modified."""
    image_uri = image.uri if isinstance(image, ImageReference) else str(image)

    containers = registered.get("containerDefinitions")
    if not isinstance(containers, list) or not containers or not isinstance(containers[0], dict):
        raise SpecificationFetchFailed(
            f"Task definition {registered.get('family', '?')} has no container definitions"
        )

    candidate = {
        key: copy.deepcopy(value)
        for key, value in registered.items()
        if key not in SERVER_ASSIGNED_FIELDS
    }
    candidate["containerDefinitions"][0]["image"] = image_uri
    return candidate


def prepare_candidate(ecs: Any, family: str, image: Union[ImageReference, str]) -> Dict[str, Any]:
    """Fetch the live definition for ``family`` and build a candidate from it."""
    registered = fetch_task_definition(ecs, family)
    candidate = build_candidate(registered, image)
    previous = registered["containerDefinitions"][0].get("image", "?")
    logger.info(f"[INFO] Primary container image: {previous} -> {candidate['containerDefinitions'][0]['image']}")
    return candidate
