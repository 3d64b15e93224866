"""image_locator.py - Resolve the image to deploy for an environment.

Pinned mode asks ECR for every tagged image in the environment's repository
and picks the most recently pushed one. Floating mode uses the configured
mutable tag and never touches the registry.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .config import RotationConfig
from .errors import ImageLookupFailed, NoImageFound

logger = logging.getLogger(__name__)

_EPOCH = dt.datetime(1970, 1, 1, tzinfo=dt.timezone.utc)


@dataclass(frozen=True)
class ImageReference:
    repository: str
    tag: str
    pushed_at: Optional[dt.datetime] = None

    @property
    def uri(self) -> str:
        return f"{self.repository}:{self.tag}"

    def __str__(self) -> str:
        return self.uri


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def _pushed_at(detail: Dict[str, Any]) -> dt.datetime:
    pushed = detail.get("imagePushedAt")
    if not isinstance(pushed, dt.datetime):
        return _EPOCH
    if pushed.tzinfo is None:
        pushed = pushed.replace(tzinfo=dt.timezone.utc)
    return pushed


def _list_tagged_images(ecr: Any, namespace: str) -> List[Dict[str, Any]]:
    paginator = ecr.get_paginator("describe_images")
    details: List[Dict[str, Any]] = []
    for page in paginator.paginate(repositoryName=namespace, filter={"tagStatus": "TAGGED"}):
        details.extend(d for d in page.get("imageDetails", []) if d.get("imageTags"))
    return details


def _repository_uri(ecr: Any, namespace: str) -> str:
    resp = ecr.describe_repositories(repositoryNames=[namespace])
    repos = resp.get("repositories", [])
    if not repos or not repos[0].get("repositoryUri"):
        raise NoImageFound(f"Repository {namespace} not found")
    return repos[0]["repositoryUri"]


def latest_pushed_image(
    ecr: Any,
    namespace: str,
    repository_url: Optional[str] = None,
) -> ImageReference:
    """Return the most recently pushed tagged image in ``namespace``.

    Raises NoImageFound if the repository is empty or missing, and
    ImageLookupFailed for any other registry error.
    """
    try:
        details = _list_tagged_images(ecr, namespace)
        if not details:
            raise NoImageFound(f"No tagged images in repository {namespace}")
        if not repository_url:
            repository_url = _repository_uri(ecr, namespace)
    except ClientError as exc:
        if _error_code(exc) == "RepositoryNotFoundException":
            raise NoImageFound(f"Repository {namespace} not found") from exc
        raise ImageLookupFailed(f"Failed to list images in {namespace}: {exc}") from exc
    except BotoCoreError as exc:
        raise ImageLookupFailed(f"Failed to list images in {namespace}: {exc}") from exc

    # Stable sort: for equal push times the later listing entry wins.
    newest = sorted(details, key=_pushed_at)[-1]
    image = ImageReference(
        repository=repository_url,
        tag=newest["imageTags"][0],
        pushed_at=newest.get("imagePushedAt"),
    )
    logger.info(f"[INFO] Latest image in {namespace}: {image.uri} ({len(details)} tagged)")
    return image


def floating_image(config: RotationConfig) -> ImageReference:
    """The pre-agreed mutable tag for ``config``; no registry call."""
    repository = config.repository_url or config.registry_namespace
    return ImageReference(repository=repository, tag=config.floating_tag)
