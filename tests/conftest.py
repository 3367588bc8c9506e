"""Shared pytest fixtures.

Settings are built with `_env_file=None` so a developer's own `.env` or user
config never leaks into assertions.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from core.config import AppSettings
from core.domain.models import Architecture, Environment
from core.services.deployment_pipeline import DeployRequest, PipelineAdapters

from fakes import (
    FakeBuildEnvironment,
    FakeInspector,
    FakeOrchestrator,
    FakePreflight,
    FakeProtocolClient,
    FakeStatusSource,
    mcp_responses,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for name in ("AWS_REGION", "ENVIRONMENT", "MCP_DEPLOY_REGION", "MCP_DEPLOY_ENVIRONMENT", "MCP_DEPLOY_STACK_NAME"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(_env_file=None, wait_delay_seconds=0)


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    src = tmp_path / "service"
    src.mkdir()
    (src / "Dockerfile.lambda").write_text("FROM public.ecr.aws/lambda/provided:al2023\n")
    (src / "template.yaml").write_text("Transform: AWS::Serverless-2016-10-31\n")
    return src


@pytest.fixture
def deploy_request(source_dir: Path) -> DeployRequest:
    return DeployRequest(
        environment=Environment.PROD,
        region="us-east-1",
        stack_name="mcp-server-rust-prod",
        source_dir=source_dir,
        architecture=Architecture.ARM64,
    )


@pytest.fixture
def protocol_client() -> FakeProtocolClient:
    return FakeProtocolClient(mcp_responses())


@pytest.fixture
def make_adapters(protocol_client):
    def _make(
        orchestrator: FakeOrchestrator,
        *,
        client: FakeProtocolClient | None = None,
        status_source: FakeStatusSource | None = None,
        preflight: FakePreflight | None = None,
        build_environment: FakeBuildEnvironment | None = None,
        inspector: FakeInspector | None = None,
    ) -> PipelineAdapters:
        rpc = client or protocol_client
        return PipelineAdapters(
            preflight=preflight or FakePreflight(),
            build_environment=build_environment or FakeBuildEnvironment(),
            inspector=inspector or FakeInspector(),
            orchestrator=orchestrator,
            client_factory=lambda endpoint: rpc,
            status_source=status_source or FakeStatusSource(),
        )

    return _make
