"""
Pytest configuration and shared fixtures.
Unit tests use FakeEngine (an in-process stand-in for Pulumi's automation API).
Integration tests run a real Pulumi program against LocalStack (Docker).
"""
import sys

sys.path.insert(0, "services")

import os
from dataclasses import dataclass, field

import pytest
from pulumi import automation as auto

from bucket_service.graph import ResourceGraph

LOCALSTACK_ENDPOINT = os.environ.get("LOCALSTACK_ENDPOINT", "http://localhost:4566")
USE_LOCALSTACK = os.environ.get("USE_LOCALSTACK", "false").lower() == "true"

WEBSITE_ENDPOINT = "{bucket}.s3-website-{region}.amazonaws.com"


@pytest.fixture(autouse=True)
def aws_env(monkeypatch):
    """Pin stack identity and provider settings so tests never read a developer's env."""
    monkeypatch.setenv("PULUMI_PROJECT_NAME", "pulumi_api_rest")
    monkeypatch.setenv("PULUMI_STACK_NAME", "dev")
    monkeypatch.setenv("AWS_PROFILE", "dev")
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)
    monkeypatch.delenv("PULUMI_WORK_DIR", raising=False)


# ---------------------------------------------------------------------------
# Fake provisioning engine
# ---------------------------------------------------------------------------

class OrderingViolation(RuntimeError):
    """A resource was applied before one of its dependencies."""


@dataclass
class FakeOutputValue:
    value: object
    secret: bool = False


@dataclass
class FakeUpResult:
    outputs: dict
    summary: dict = field(default_factory=dict)


@dataclass
class FakeStackState:
    """What Pulumi would keep in its state backend for one stack."""
    status: str = "Absent"
    resources: dict = field(default_factory=dict)   # (type, name) → properties
    config: dict = field(default_factory=dict)
    in_flight: str | None = None
    operations: list = field(default_factory=list)  # (verb, "create"/"update"/"delete", name)


class FakeStack:
    def __init__(self, engine: "FakeEngine", key: tuple, graph: ResourceGraph):
        self._engine = engine
        self._key = key
        self._graph = graph
        self.name = key[1]

    @property
    def state(self) -> FakeStackState:
        return self._engine.stacks[self._key]

    def set_all_config(self, config, path=False):
        self._engine.calls.append(("set_all_config", self.name))
        self._engine.raise_if_failing("set_all_config")
        self.state.config.update({k: v.value for k, v in config.items()})
        self._engine.config_paths.append(path)

    def up(self, on_output=None):
        self._engine.calls.append(("up", self.name))
        self._engine.raise_if_failing("up")
        order = self._engine.apply_order(self._graph)
        applied: set = set()
        desired = {}
        for node in order:
            missing = node.dependencies() - applied
            if missing:
                raise OrderingViolation(f"{node.key} applied before {sorted(missing)}")
            applied.add(node.key)
            rkey = (node.type, node.name)
            desired[rkey] = node.properties
            if rkey not in self.state.resources:
                self.state.operations.append(("up", "create", node.name))
            elif self.state.resources[rkey] != node.properties:
                self.state.operations.append(("up", "update", node.name))
            if on_output:
                on_output(f"    + {node.type} {node.name}\n")
        for rkey in set(self.state.resources) - set(desired):
            self.state.operations.append(("up", "delete", rkey[1]))
        self.state.resources = desired
        self.state.status = "Active"

        bucket = self._graph.nodes["bucket"].properties["bucket"]
        region = self.state.config.get("aws:region", "us-east-1")
        endpoint = self._engine.website_endpoint or WEBSITE_ENDPOINT.format(bucket=bucket, region=region)
        outputs = {"websiteUrl": FakeOutputValue(endpoint)}
        if self._engine.outputs_override is not None:
            outputs = self._engine.outputs_override
        return FakeUpResult(outputs=outputs)

    def refresh(self, on_output=None):
        self._engine.calls.append(("refresh", self.name))
        self._engine.raise_if_failing("refresh")
        if on_output:
            on_output("Refreshing (dev)\n")

    def destroy(self, on_output=None):
        self._engine.calls.append(("destroy", self.name))
        self._engine.raise_if_failing("destroy")
        for rkey in self.state.resources:
            self.state.operations.append(("destroy", "delete", rkey[1]))
            if on_output:
                on_output(f"    - {rkey[0]} {rkey[1]}\n")
        self.state.resources = {}
        self.state.status = "Absent"

    def cancel(self):
        self._engine.calls.append(("cancel", self.name))
        self._engine.raise_if_failing("cancel")
        if self.state.in_flight is None:
            # pulumi cancel exits non-zero when there is nothing to cancel
            raise auto.CommandError(auto.CommandResult(
                stdout="",
                stderr="error: no stack update is currently in progress\n",
                code=255,
            ))
        self.state.in_flight = None


class FakeEngine:
    def __init__(self, website_endpoint=None, apply_order=None):
        self.stacks: dict = {}
        self.calls: list = []
        self.resolutions: list = []      # "create" or "select"
        self.config_paths: list = []
        self.failures: dict = {}         # verb → exception to raise
        self.website_endpoint = website_endpoint
        self.outputs_override = None
        self.apply_order = apply_order or (lambda graph: graph.topological_order())

    def create_or_select_stack(self, identity, graph):
        self.calls.append(("create_or_select_stack", identity.stack_name))
        self.raise_if_failing("create_or_select_stack")
        key = (identity.project_name, identity.stack_name)
        if key in self.stacks:
            self.resolutions.append("select")
        else:
            self.stacks[key] = FakeStackState()
            self.resolutions.append("create")
        return FakeStack(self, key, graph)

    def raise_if_failing(self, verb: str) -> None:
        if verb in self.failures:
            raise self.failures[verb]

    def state(self, project="pulumi_api_rest", stack="dev") -> FakeStackState:
        return self.stacks[(project, stack)]

    def engine_calls(self) -> list:
        return [c[0] for c in self.calls]


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def identity():
    from shared.models import StackIdentity
    return StackIdentity(project_name="pulumi_api_rest", stack_name="dev")


@pytest.fixture
def spec():
    from shared.models import ResourceSpec
    return ResourceSpec(bucketName="my-bucket", customMessage="hi")
