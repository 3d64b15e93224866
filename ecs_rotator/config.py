"""config.py - Environment variables, name templates and rotation settings.

Every resource name is derived from the environment and component names,
so a single ``environment`` value selects cluster, service, task family and
registry namespace.

Environment variables:
    ROTATOR_ENVIRONMENT       default: staging
    ROTATOR_REGION            default: ca-central-1
    ROTATOR_MODE              default: pinned
    ROTATOR_COMPONENT         default: renegade-dealer
    ROTATOR_REGISTRY_ACCOUNT  default: (empty, resolved from ECR)
    ROTATOR_FLOATING_TAG      default: latest
    ROTATOR_MAX_ATTEMPTS      default: 1
    ROTATOR_ENVIRONMENTS      default: staging,prod (environments an ECR push may rotate)
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, fields, replace
from typing import Any, Iterable, List, Optional

from .errors import ConfigError

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_ENVIRONMENT = os.environ.get("ROTATOR_ENVIRONMENT", "staging")
DEFAULT_REGION = os.environ.get("ROTATOR_REGION", "ca-central-1")
DEFAULT_MODE = os.environ.get("ROTATOR_MODE", "pinned")
DEFAULT_COMPONENT = os.environ.get("ROTATOR_COMPONENT", "renegade-dealer")
DEFAULT_REGISTRY_ACCOUNT = os.environ.get("ROTATOR_REGISTRY_ACCOUNT", "")
DEFAULT_FLOATING_TAG = os.environ.get("ROTATOR_FLOATING_TAG", "latest")
DEFAULT_MAX_ATTEMPTS = "1"
DEFAULT_ENVIRONMENTS = "staging,prod"

MODE_PINNED = "pinned"
MODE_FLOATING = "floating"
MODES = (MODE_PINNED, MODE_FLOATING)

_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9-]*$")


@dataclass(frozen=True)
class RotationConfig:
    """Settings for one rotation run."""

    environment: str = DEFAULT_ENVIRONMENT
    region: str = DEFAULT_REGION
    mode: str = DEFAULT_MODE
    component: str = DEFAULT_COMPONENT
    registry_account: str = DEFAULT_REGISTRY_ACCOUNT
    floating_tag: str = DEFAULT_FLOATING_TAG

    @classmethod
    def from_env(cls, **overrides: Any) -> "RotationConfig":
        """Build from environment defaults, apply non-None overrides, validate."""
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"Unknown configuration option(s): {', '.join(sorted(unknown))}")
        config = cls(
            environment=os.environ.get("ROTATOR_ENVIRONMENT", DEFAULT_ENVIRONMENT),
            region=os.environ.get("ROTATOR_REGION", DEFAULT_REGION),
            mode=os.environ.get("ROTATOR_MODE", DEFAULT_MODE),
            component=os.environ.get("ROTATOR_COMPONENT", DEFAULT_COMPONENT),
            registry_account=os.environ.get("ROTATOR_REGISTRY_ACCOUNT", DEFAULT_REGISTRY_ACCOUNT),
            floating_tag=os.environ.get("ROTATOR_FLOATING_TAG", DEFAULT_FLOATING_TAG),
        )
        applied = {k: v for k, v in overrides.items() if v is not None}
        if applied:
            config = replace(config, **applied)
        config.validate()
        return config

    def validate(self) -> None:
        if not self.environment or not _NAME_RE.match(self.environment):
            raise ConfigError(f"Invalid environment name: {self.environment!r}")
        if not self.component or not _NAME_RE.match(self.component):
            raise ConfigError(f"Invalid component name: {self.component!r}")
        if not self.region:
            raise ConfigError("region must be set")
        if self.mode not in MODES:
            raise ConfigError(f"Unknown mode {self.mode!r}; expected one of {', '.join(MODES)}")
        if not self.floating_tag:
            raise ConfigError("floating_tag must not be empty")
        if self.registry_account and not self.registry_account.isdigit():
            raise ConfigError(f"Invalid registry account: {self.registry_account!r}")
        max_attempts()

    # -- name templates -----------------------------------------------------

    @property
    def cluster(self) -> str:
        return f"{self.environment}-{self.component}-cluster"

    @property
    def service(self) -> str:
        return f"{self.environment}-{self.component}-service"

    @property
    def task_family(self) -> str:
        return f"{self.environment}-{self.component}-task-def"

    @property
    def registry_namespace(self) -> str:
        return f"{self.component}-{self.environment}"

    @property
    def repository_url(self) -> Optional[str]:
        """Fully qualified ECR repository URL, or None when the account is unknown."""
        if not self.registry_account:
            return None
        return (
            f"{self.registry_account}.dkr.ecr.{self.region}.amazonaws.com/"
            f"{self.registry_namespace}"
        )


def environment_from_namespace(
    namespace: str,
    component: str = DEFAULT_COMPONENT,
    allowed: Optional[Iterable[str]] = None,
) -> Optional[str]:
    """Invert the registry namespace template; None when it does not match.

    With ``allowed``, only an exact <component>-<environment> match for one of
    those environments counts, so sibling repositories such as
    <component>-api-prod are not mistaken for environment "api-prod".
    """
    if allowed is not None:
        for environment in allowed:
            if namespace == f"{component}-{environment}" and _NAME_RE.match(environment):
                return environment
        return None
    prefix = f"{component}-"
    if not namespace.startswith(prefix):
        return None
    environment = namespace[len(prefix):]
    if not _NAME_RE.match(environment):
        return None
    return environment


def _parse_csv(value: str) -> List[str]:
    if not value:
        return []
    return [token.strip() for token in value.split(",") if token.strip()]


def max_attempts() -> int:
    """botocore attempt count from ROTATOR_MAX_ATTEMPTS."""
    raw = os.environ.get("ROTATOR_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)
    try:
        attempts = int(raw)
    except ValueError:
        raise ConfigError(f"ROTATOR_MAX_ATTEMPTS must be an integer, got {raw!r}") from None
    if attempts < 1:
        raise ConfigError(f"ROTATOR_MAX_ATTEMPTS must be at least 1, got {attempts}")
    return attempts


def allowed_environments() -> List[str]:
    """Environments an image push is allowed to rotate (ROTATOR_ENVIRONMENTS)."""
    return _parse_csv(os.environ.get("ROTATOR_ENVIRONMENTS", DEFAULT_ENVIRONMENTS))
