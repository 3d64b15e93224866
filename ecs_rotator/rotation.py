"""rotation.py - Pinned and floating rotation strategies.

Flow (pinned):
    ECR describe_images
    → Pick most recently pushed tag
    → describe_task_definition
    → Build candidate (image swapped, server fields stripped)
    → register_task_definition
    → update_service(taskDefinition=<family>:<revision>)

Flow (floating):
    update_service(forceNewDeployment=True)

Any failure aborts the run where it happened. The service keeps its prior
revision unless the final update_service call itself went through.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Type

from .aws_clients import _get_ecr, _get_ecs
from .config import MODE_FLOATING, MODE_PINNED, RotationConfig
from .errors import ConfigError, RotationError
from .image_locator import ImageReference, floating_image, latest_pushed_image
from .registrar import Revision, register_candidate
from .repointer import force_redeploy, repoint_service
from .task_definition import prepare_candidate

logger = logging.getLogger(__name__)


@dataclass
class RotationResult:
    mode: str
    environment: str
    cluster: str
    service: str
    task_family: str
    image: Optional[ImageReference] = None
    revision: Optional[Revision] = None
    task_definition: Optional[str] = None
    deployment_id: Optional[str] = None
    dry_run: bool = False
    candidate: Optional[Dict[str, Any]] = field(default=None, repr=False)

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "mode": self.mode,
            "environment": self.environment,
            "cluster": self.cluster,
            "service": self.service,
            "task_family": self.task_family,
            "image": self.image.uri if self.image else None,
            "revision": self.revision.number if self.revision else None,
            "task_definition": self.task_definition,
            "deployment_id": self.deployment_id,
            "dry_run": self.dry_run,
        }
        if self.candidate is not None:
            out["candidate"] = self.candidate
        return out


def _primary_deployment_id(ack: Dict[str, Any]) -> Optional[str]:
    deployments = ack.get("deployments") or []
    for deployment in deployments:
        if deployment.get("status") == "PRIMARY":
            return deployment.get("id")
    return deployments[0].get("id") if deployments else None


class RotationStrategy:
    """One way of rolling a service onto new image content."""

    mode = ""

    def rotate(
        self,
        config: RotationConfig,
        *,
        ecr: Any = None,
        ecs: Any = None,
        dry_run: bool = False,
    ) -> RotationResult:
        raise NotImplementedError

    def _result(self, config: RotationConfig, **kwargs: Any) -> RotationResult:
        return RotationResult(
            mode=self.mode,
            environment=config.environment,
            cluster=config.cluster,
            service=config.service,
            task_family=config.task_family,
            **kwargs,
        )


class PinnedRotation(RotationStrategy):
    """Register a revision for the newest image and repoint the service at it."""

    mode = MODE_PINNED

    def rotate(
        self,
        config: RotationConfig,
        *,
        ecr: Any = None,
        ecs: Any = None,
        dry_run: bool = False,
    ) -> RotationResult:
        ecr = ecr if ecr is not None else _get_ecr(config.region)
        ecs = ecs if ecs is not None else _get_ecs(config.region)

        image = latest_pushed_image(ecr, config.registry_namespace, config.repository_url)
        logger.info(f"[INFO] Using image URI: {image.uri}")

        candidate = prepare_candidate(ecs, config.task_family, image)
        if dry_run:
            logger.info(f"[DRY-RUN] Stopping before registration of {config.task_family}")
            return self._result(config, image=image, dry_run=True, candidate=candidate)

        revision = register_candidate(ecs, candidate)
        ack = repoint_service(ecs, config.cluster, config.service, revision)
        return self._result(
            config,
            image=image,
            revision=revision,
            task_definition=ack.get("taskDefinition") or revision.qualified,
            deployment_id=_primary_deployment_id(ack),
        )


class FloatingRotation(RotationStrategy):
    """Force the service to re-pull its mutable tag under the current revision."""

    mode = MODE_FLOATING

    def rotate(
        self,
        config: RotationConfig,
        *,
        ecr: Any = None,
        ecs: Any = None,
        dry_run: bool = False,
    ) -> RotationResult:
        image = floating_image(config)
        if dry_run:
            logger.info(f"[DRY-RUN] Would force new deployment of {config.cluster}/{config.service}")
            return self._result(config, image=image, dry_run=True)

        ecs = ecs if ecs is not None else _get_ecs(config.region)
        ack = force_redeploy(ecs, config.cluster, config.service)
        return self._result(
            config,
            image=image,
            task_definition=ack.get("taskDefinition"),
            deployment_id=_primary_deployment_id(ack),
        )


STRATEGIES: Dict[str, Type[RotationStrategy]] = {
    MODE_PINNED: PinnedRotation,
    MODE_FLOATING: FloatingRotation,
}


def strategy_for(mode: str) -> RotationStrategy:
    try:
        return STRATEGIES[mode]()
    except KeyError:
        raise ConfigError(f"Unknown mode {mode!r}; expected one of {', '.join(STRATEGIES)}") from None


def rotate(
    config: RotationConfig,
    *,
    ecr: Any = None,
    ecs: Any = None,
    dry_run: bool = False,
) -> RotationResult:
    """Run one rotation for ``config`` with the strategy its mode selects."""
    strategy = strategy_for(config.mode)
    logger.info(
        f"[START] {strategy.mode} rotation of {config.cluster}/{config.service} "
        f"({config.environment}, {config.region})"
    )
    try:
        result = strategy.rotate(config, ecr=ecr, ecs=ecs, dry_run=dry_run)
    except RotationError as exc:
        logger.error(f"[ERROR] Rotation aborted at {exc.stage}: {exc}")
        raise
    logger.info(f"[END] {strategy.mode} rotation of {config.service} complete")
    return result
