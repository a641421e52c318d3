"""Pulumi Infrastructure Tests Configuration."""

import dataclasses
import os
import sys
from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pulumi
import pytest

# Set test environment variables
os.environ.setdefault("PULUMI_CONFIG_PASSPHRASE", "test-passphrase")
os.environ.setdefault("PULUMI_SKIP_UPDATE_CHECK", "true")

# Add the infrastructure directory to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from stacks.settings import Settings, get_profile  # noqa: E402

MOCK_INGRESS_IP = "203.0.113.10"
MOCK_PRIVATE_IP = "10.20.0.3"


def mock_password(length: int) -> str:
    """Deterministic stand-in for a RandomPassword result."""
    return "aA1!" + "x" * (length - 4)


class RecordingMocks(pulumi.runtime.Mocks):
    """Pulumi mocks that remember every resource registration.

    Outputs echo the inputs, plus the computed attributes the stacks read
    (connection names, emails, URIs, addresses, generated passwords).
    """

    def __init__(self) -> None:
        self.resources: list[pulumi.runtime.MockResourceArgs] = []

    def new_resource(self, args: pulumi.runtime.MockResourceArgs) -> tuple[str, dict[str, Any]]:
        self.resources.append(args)
        outputs = dict(args.inputs)
        typ = args.typ

        if typ.endswith(":RandomPassword"):
            outputs["result"] = mock_password(int(args.inputs.get("length", 16)))
        elif typ.endswith(":DatabaseInstance"):
            name = args.inputs.get("name", args.name)
            region = args.inputs.get("region", "us-central1")
            outputs["connectionName"] = f"webstack-test:{region}:{name}"
            outputs["privateIpAddress"] = MOCK_PRIVATE_IP
        elif typ.startswith("gcp:serviceaccount/"):
            outputs["email"] = f"{args.inputs['accountId']}@webstack-test.iam.gserviceaccount.com"
        elif typ.startswith("gcp:cloudrunv2/") and typ.endswith(":Service"):
            outputs["uri"] = f"https://{args.inputs.get('name', args.name)}-abc123-uc.a.run.app"
        elif typ.endswith(":GlobalAddress") and not args.inputs.get("purpose"):
            outputs["address"] = MOCK_INGRESS_IP

        return f"{args.name}_id", outputs

    def call(self, args: pulumi.runtime.MockCallArgs) -> dict[str, Any]:
        return {}

    def get(self, name: str) -> pulumi.runtime.MockResourceArgs:
        """Return the registration for a logical resource name."""
        for res in self.resources:
            if res.name == name:
                return res
        raise KeyError(f"Resource {name} was not registered")

    def names(self) -> list[str]:
        return [res.name for res in self.resources if not res.typ.startswith("pulumi:")]

    def of_type(self, suffix: str) -> list[pulumi.runtime.MockResourceArgs]:
        return [res for res in self.resources if res.typ.endswith(suffix)]


MOCKS = RecordingMocks()
pulumi.runtime.set_mocks(MOCKS, project="webstack", stack="test", preview=False)


@pytest.fixture(scope="session")
def project_id() -> str:
    """Test GCP project ID."""
    return "webstack-test"


@pytest.fixture(scope="session")
def region() -> str:
    """Test GCP region."""
    return "us-central1"


@pytest.fixture(scope="session")
def env() -> str:
    """Test environment."""
    return "test"


@pytest.fixture(scope="session")
def domain() -> str:
    """Test domain."""
    return "app.webstack.dev"


@pytest.fixture
def mocks() -> RecordingMocks:
    """Recording mocks, emptied before each test."""
    MOCKS.resources.clear()
    return MOCKS


@pytest.fixture
def make_settings(project_id: str, region: str, env: str) -> Callable[..., Settings]:
    """Build Settings directly, bypassing Pulumi config."""

    def _make(**overrides: Any) -> Settings:
        base = Settings(
            project_id=project_id,
            region=region,
            env=env,
            project_name="webstack-test",
            image="us-docker.pkg.dev/webstack-test/app/web:1.0.0",
            container_port=8080,
            db_name="app",
            db_user="app",
            domain=None,
            use_vpc_connector=True,
            subnet_cidr="10.10.0.0/24",
            connector_cidr="10.8.0.0/28",
            profile=get_profile(env),
        )
        return dataclasses.replace(base, **overrides)

    return _make


@pytest.fixture
def fake_config() -> Callable[[dict[str, Any]], MagicMock]:
    """MagicMock standing in for pulumi.Config, backed by a dict."""

    def _make(values: dict[str, Any]) -> MagicMock:
        config = MagicMock()
        config.get.side_effect = lambda key, default=None: values.get(key, default)
        config.get_bool.side_effect = lambda key, default=None: values.get(key, default)
        config.get_int.side_effect = lambda key, default=None: values.get(key, default)
        config.require.side_effect = lambda key: values[key]
        return config

    return _make


def deploy(fn: Callable[[], Any]) -> None:
    """Run ``fn`` under the Pulumi mock runtime and wait for every registration."""
    pulumi.runtime.test(fn)()
