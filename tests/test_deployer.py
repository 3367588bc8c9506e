import pytest

from core.domain.errors import DeployError
from core.domain.models import Architecture, BuildArtifact, DeploymentBundle, Environment, ReconcileAction
from core.services.deployer import Deployer
from core.services.reconciler import StackReconciler

from fakes import ENDPOINT, FakeOrchestrator


@pytest.fixture
def bundle(tmp_path):
    exe = tmp_path / "bootstrap"
    exe.write_bytes(b"\x7fELF")
    archive = tmp_path / "bootstrap.zip"
    archive.write_bytes(b"PK")
    return DeploymentBundle(
        artifact=BuildArtifact(path=exe, architecture=Architecture.ARM64),
        executable_path=exe,
        archive_path=archive,
        entry_name="bootstrap",
    )


def _deploy(settings, orchestrator, bundle):
    reconciler = StackReconciler(orchestrator)
    descriptor = reconciler.describe(stack_name="mcp-server-rust-dev", environment=Environment.DEV, region="us-east-1")
    action, descriptor = reconciler.reconcile(descriptor)
    deployer = Deployer(settings=settings, orchestrator=orchestrator)
    return action, deployer.deploy(descriptor, action, bundle, template_file="/src/template.yaml")


def test_unchanged_healthy_stack_redeploys_as_noop(settings, bundle):
    orchestrator = FakeOrchestrator(status="UPDATE_COMPLETE")

    action, (descriptor, outputs) = _deploy(settings, orchestrator, bundle)

    assert action is ReconcileAction.UPDATE
    assert descriptor.status == "UPDATE_COMPLETE"
    assert outputs.endpoint == ENDPOINT


def test_parameters_and_tags(settings, bundle):
    orchestrator = FakeOrchestrator(status=None)

    _deploy(settings, orchestrator, bundle)

    sent = orchestrator.deploy_kwargs[0]
    assert sent["stack_name"] == "mcp-server-rust-dev"
    assert sent["parameters"] == {"Environment": "dev"}
    assert sent["tags"] == {"Environment": "dev", "Project": "mcp-server", "Architecture": "arm64"}
    assert orchestrator.calls.index("validate_template") < orchestrator.calls.index("create")


def test_outputs_are_read_by_name(settings, bundle):
    _, (_, outputs) = _deploy(settings, FakeOrchestrator(status=None), bundle)

    assert outputs.function_name == "mcp-server-prod"
    assert outputs.api_url.endswith("/prod/")
    assert outputs.has_endpoint


def test_unhealthy_result_is_deploy_error(settings, bundle):
    orchestrator = FakeOrchestrator(status=None, deploy_result="ROLLBACK_COMPLETE")

    with pytest.raises(DeployError, match="ROLLBACK_COMPLETE"):
        _deploy(settings, orchestrator, bundle)

    # left for the next run's reconciler
    assert orchestrator.status == "ROLLBACK_COMPLETE"
    assert "delete" not in orchestrator.calls


def test_missing_bundle_is_rejected(settings, bundle):
    bundle.archive_path.unlink()

    with pytest.raises(DeployError, match="Bundle missing"):
        _deploy(settings, FakeOrchestrator(status=None), bundle)
