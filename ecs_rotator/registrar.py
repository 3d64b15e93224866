"""registrar.py - Register candidate task definitions.

Every call creates a new revision, even for a candidate identical to one
already registered. Revisions are never reused or overwritten, so each
rotation attempt stays visible in the family's history.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .errors import RegistrationRejected

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Revision:
    family: str
    number: int
    arn: Optional[str] = None

    @property
    def qualified(self) -> str:
        return f"{self.family}:{self.number}"

    def __str__(self) -> str:
        return self.qualified


def register_candidate(ecs: Any, candidate: Dict[str, Any]) -> Revision:
    family = candidate.get("family", "")
    try:
        resp = ecs.register_task_definition(**candidate)
    except (ClientError, BotoCoreError) as exc:
        raise RegistrationRejected(f"Task definition {family or '?'} rejected: {exc}") from exc

    task_def = resp.get("taskDefinition") or {}
    number = task_def.get("revision")
    if not isinstance(number, int):
        raise RegistrationRejected(f"Registration of {family or '?'} returned no revision")

    revision = Revision(
        family=task_def.get("family") or family,
        number=number,
        arn=task_def.get("taskDefinitionArn"),
    )
    logger.info(f"[SUCCESS] Created new task revision: {revision.qualified}")
    return revision
