"""Candidate task definition construction tests.

Covers the server-assigned field deny-list, primary-container-only image
replacement, and abort behavior when the live definition cannot be used.
"""

from __future__ import annotations

import copy
import datetime as dt
import unittest
from unittest.mock import MagicMock

from botocore.exceptions import ClientError

from ecs_rotator.errors import SpecificationFetchFailed
from ecs_rotator.image_locator import ImageReference
from ecs_rotator.task_definition import (
    SERVER_ASSIGNED_FIELDS,
    build_candidate,
    fetch_task_definition,
    prepare_candidate,
)

REPO = "377928551571.dkr.ecr.ca-central-1.amazonaws.com/renegade-dealer-staging"


def _registered(**extra) -> dict:
    doc = {
        "taskDefinitionArn": "arn:aws:ecs:ca-central-1:377928551571:task-definition/staging-renegade-dealer-task-def:7",
        "family": "staging-renegade-dealer-task-def",
        "revision": 7,
        "status": "ACTIVE",
        "requiresAttributes": [{"name": "com.amazonaws.ecs.capability.ecr-auth"}],
        "compatibilities": ["EC2", "FARGATE"],
        "registeredAt": dt.datetime(2024, 3, 1, 12, 0, tzinfo=dt.timezone.utc),
        "registeredBy": "arn:aws:iam::377928551571:user/deployer",
        "networkMode": "awsvpc",
        "requiresCompatibilities": ["FARGATE"],
        "cpu": "512",
        "memory": "1024",
        "executionRoleArn": "arn:aws:iam::377928551571:role/ecsTaskExecutionRole",
        "containerDefinitions": [
            {
                "name": "dealer",
                "image": f"{REPO}:v6",
                "essential": True,
                "portMappings": [{"containerPort": 3000, "protocol": "tcp"}],
                "environment": [{"name": "RUST_LOG", "value": "info"}],
            },
            {
                "name": "log-router",
                "image": "public.ecr.aws/aws-observability/aws-for-fluent-bit:stable",
                "essential": False,
            },
        ],
    }
    doc.update(extra)
    return doc


class BuildCandidateTests(unittest.TestCase):
    def test_strips_every_server_assigned_field(self) -> None:
        candidate = build_candidate(_registered(), ImageReference(REPO, "v7"))
        for key in SERVER_ASSIGNED_FIELDS:
            self.assertNotIn(key, candidate)

    def test_absent_server_fields_are_not_an_error(self) -> None:
        registered = _registered()
        for key in SERVER_ASSIGNED_FIELDS:
            registered.pop(key)
        candidate = build_candidate(registered, ImageReference(REPO, "v7"))
        for key in SERVER_ASSIGNED_FIELDS:
            self.assertNotIn(key, candidate)
        self.assertEqual(candidate["containerDefinitions"][0]["image"], f"{REPO}:v7")

    def test_only_primary_image_changes(self) -> None:
        registered = _registered()
        candidate = build_candidate(registered, ImageReference(REPO, "v7"))

        expected = {k: v for k, v in copy.deepcopy(registered).items() if k not in SERVER_ASSIGNED_FIELDS}
        expected["containerDefinitions"][0]["image"] = f"{REPO}:v7"
        self.assertEqual(candidate, expected)

    def test_secondary_containers_keep_their_image(self) -> None:
        candidate = build_candidate(_registered(), ImageReference(REPO, "v7"))
        self.assertEqual(
            candidate["containerDefinitions"][1]["image"],
            "public.ecr.aws/aws-observability/aws-for-fluent-bit:stable",
        )

    def test_unknown_fields_pass_through(self) -> None:
        registered = _registered(runtimePlatform={"cpuArchitecture": "ARM64"}, someFutureField={"x": [1, 2]})
        candidate = build_candidate(registered, ImageReference(REPO, "v7"))
        self.assertEqual(candidate["runtimePlatform"], {"cpuArchitecture": "ARM64"})
        self.assertEqual(candidate["someFutureField"], {"x": [1, 2]})

    def test_input_document_is_not_modified(self) -> None:
        registered = _registered()
        snapshot = copy.deepcopy(registered)
        candidate = build_candidate(registered, ImageReference(REPO, "v7"))
        candidate["containerDefinitions"][0]["environment"].append({"name": "X", "value": "1"})
        self.assertEqual(registered, snapshot)

    def test_accepts_plain_image_uri(self) -> None:
        candidate = build_candidate(_registered(), "example.com/dealer:abc")
        self.assertEqual(candidate["containerDefinitions"][0]["image"], "example.com/dealer:abc")

    def test_missing_container_definitions_aborts(self) -> None:
        with self.assertRaises(SpecificationFetchFailed):
            build_candidate(_registered(containerDefinitions=[]), ImageReference(REPO, "v7"))
        registered = _registered()
        del registered["containerDefinitions"]
        with self.assertRaises(SpecificationFetchFailed):
            build_candidate(registered, ImageReference(REPO, "v7"))


class FetchTaskDefinitionTests(unittest.TestCase):
    def test_fetch_returns_task_definition(self) -> None:
        ecs = MagicMock()
        ecs.describe_task_definition.return_value = {"taskDefinition": _registered()}
        doc = fetch_task_definition(ecs, "staging-renegade-dealer-task-def")
        self.assertEqual(doc["revision"], 7)
        ecs.describe_task_definition.assert_called_once_with(taskDefinition="staging-renegade-dealer-task-def")

    def test_fetch_failure_is_wrapped(self) -> None:
        ecs = MagicMock()
        ecs.describe_task_definition.side_effect = ClientError(
            {"Error": {"Code": "ClientException", "Message": "Unable to describe task definition."}},
            "DescribeTaskDefinition",
        )
        with self.assertRaises(SpecificationFetchFailed) as ctx:
            fetch_task_definition(ecs, "staging-renegade-dealer-task-def")
        self.assertIsInstance(ctx.exception.__cause__, ClientError)
        self.assertEqual(ctx.exception.stage, "fetch")

    def test_fetch_without_task_definition_key(self) -> None:
        ecs = MagicMock()
        ecs.describe_task_definition.return_value = {}
        with self.assertRaises(SpecificationFetchFailed):
            fetch_task_definition(ecs, "staging-renegade-dealer-task-def")

    def test_prepare_candidate_fetches_once(self) -> None:
        ecs = MagicMock()
        ecs.describe_task_definition.return_value = {"taskDefinition": _registered()}
        candidate = prepare_candidate(ecs, "staging-renegade-dealer-task-def", ImageReference(REPO, "v7"))
        self.assertEqual(ecs.describe_task_definition.call_count, 1)
        self.assertEqual(candidate["containerDefinitions"][0]["image"], f"{REPO}:v7")
        self.assertNotIn("revision", candidate)


if __name__ == "__main__":
    unittest.main()
