"""ecs_rotator.errors - Failures that abort a rotation run.

Every stage raises its own error type so callers can tell which stage of
``Fetch -> Mutate -> Register -> Repoint`` failed. Nothing is retried.
"""

from __future__ import annotations

from typing import Optional


class ConfigError(ValueError):
    """Raised when the rotation configuration is invalid."""


class RotationError(RuntimeError):
    """Base class for a rotation run that aborted at ``stage``."""

    stage = "rotate"

    def __init__(self, message: str, *, stage: Optional[str] = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class NoImageFound(RotationError):
    """The registry namespace holds no tagged images."""

    stage = "locate"


class ImageLookupFailed(RotationError):
    """The registry could not be queried."""

    stage = "locate"


class SpecificationFetchFailed(RotationError):
    """The current task definition could not be read or used."""

    stage = "fetch"


class RegistrationRejected(RotationError):
    """The control plane refused the candidate task definition."""

    stage = "register"


class RepointFailed(RotationError):
    """The service update failed.

    In pinned mode the freshly registered revision is left behind unused;
    it is exposed as ``orphaned_revision`` for the operator.
    """

    stage = "repoint"

    def __init__(self, message: str, *, orphaned_revision=None) -> None:
        super().__init__(message)
        self.orphaned_revision = orphaned_revision
