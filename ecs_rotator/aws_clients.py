"""ecs_rotator.aws_clients - Lazy AWS service clients.

Creates boto3 clients on first call and caches them per region. Transport
retries are governed by ROTATOR_MAX_ATTEMPTS (default 1, i.e. no retries):
a retried register_task_definition would create an extra revision.
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

import boto3
from botocore.config import Config

from .config import DEFAULT_REGION, max_attempts

_clients: Dict[Tuple[str, str], Any] = {}


def _client_config() -> Config:
    return Config(retries={"max_attempts": max_attempts(), "mode": "standard"})


def _get_client(service: str, region: str):
    key = (service, region)
    client = _clients.get(key)
    if client is None:
        client = boto3.client(service, region_name=region, config=_client_config())
        _clients[key] = client
    return client


def _get_ecs(region: str = DEFAULT_REGION):
    """Get (or create) the ECS client for ``region``."""
    return _get_client("ecs", region)


def _get_ecr(region: str = DEFAULT_REGION):
    """Get (or create) the ECR client for ``region``."""
    return _get_client("ecr", region)
