"""repointer.py - Point a service at a revision or force a redeploy.

Both calls return as soon as ECS acknowledges the update. Rollout progress,
health checks and draining of old tasks are the scheduler's business.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from botocore.exceptions import BotoCoreError, ClientError

from .errors import RepointFailed
from .registrar import Revision

logger = logging.getLogger(__name__)


def repoint_service(ecs: Any, cluster: str, service: str, revision: Revision) -> Dict[str, Any]:
    """Set the service's task definition to ``revision``.

    Always issues the update, even if the service already runs ``revision``.
    """
    try:
        resp = ecs.update_service(
            cluster=cluster,
            service=service,
            taskDefinition=revision.qualified,
        )
    except (ClientError, BotoCoreError) as exc:
        raise RepointFailed(
            f"Failed to update {cluster}/{service} to {revision.qualified} "
            f"(revision left registered but unused): {exc}",
            orphaned_revision=revision,
        ) from exc

    logger.info(f"[SUCCESS] Service {service} updated to {revision.qualified}")
    return resp.get("service") or {}


def force_redeploy(ecs: Any, cluster: str, service: str) -> Dict[str, Any]:
    """Ask ECS to replace the service's tasks without changing its task definition."""
    try:
        resp = ecs.update_service(
            cluster=cluster,
            service=service,
            forceNewDeployment=True,
        )
    except (ClientError, BotoCoreError) as exc:
        raise RepointFailed(f"Failed to force new deployment of {cluster}/{service}: {exc}") from exc

    logger.info(f"[SUCCESS] Forced new deployment of {service}")
    return resp.get("service") or {}
