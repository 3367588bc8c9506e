import pytest

from core.domain.errors import BuildError, PreconditionError, StackStateError
from core.domain.models import ProbeOutcome, ReconcileAction, StackState
from core.services.deployment_pipeline import PipelineHooks, run_deployment

from fakes import (
    ENDPOINT,
    FakeBuildEnvironment,
    FakeOrchestrator,
    FakePreflight,
    FakeProtocolClient,
    FakeStatusSource,
    mcp_responses,
)


def test_absent_stack_is_created(settings, deploy_request, make_adapters):
    orchestrator = FakeOrchestrator(status=None)

    result = run_deployment(settings=settings, request=deploy_request, adapters=make_adapters(orchestrator))

    assert orchestrator.history == ["ABSENT", "CREATE_IN_PROGRESS", "CREATE_COMPLETE"]
    assert result.action is ReconcileAction.CREATE
    assert result.descriptor.state is StackState.HEALTHY
    assert result.outputs.endpoint == ENDPOINT


def test_poisoned_stack_is_deleted_then_created(settings, deploy_request, make_adapters):
    orchestrator = FakeOrchestrator(status="ROLLBACK_COMPLETE")

    result = run_deployment(settings=settings, request=deploy_request, adapters=make_adapters(orchestrator))

    assert orchestrator.calls[:4] == ["describe", "delete", "wait_delete", "validate_template"]
    assert "update" not in orchestrator.calls
    assert orchestrator.calls.index("wait_delete") < orchestrator.calls.index("create")
    assert result.action is ReconcileAction.RECREATE
    assert result.descriptor.state is StackState.HEALTHY


@pytest.mark.parametrize("initial", [None, "CREATE_COMPLETE", "UPDATE_COMPLETE", "ROLLBACK_COMPLETE", "ROLLBACK_FAILED"])
def test_rerun_converges_to_healthy(settings, deploy_request, make_adapters, initial):
    orchestrator = FakeOrchestrator(status=initial)

    result = run_deployment(settings=settings, request=deploy_request, adapters=make_adapters(orchestrator))

    assert result.descriptor.state is StackState.HEALTHY
    assert result.outputs.has_endpoint


def test_second_run_without_changes_succeeds(settings, deploy_request, make_adapters):
    orchestrator = FakeOrchestrator(status=None)
    run_deployment(settings=settings, request=deploy_request, adapters=make_adapters(orchestrator))

    again = run_deployment(settings=settings, request=deploy_request, adapters=make_adapters(orchestrator))

    assert again.action is ReconcileAction.UPDATE
    assert again.descriptor.status == "CREATE_COMPLETE"


def test_transient_status_aborts_before_deploy(settings, deploy_request, make_adapters):
    orchestrator = FakeOrchestrator(status="UPDATE_IN_PROGRESS")

    with pytest.raises(StackStateError, match="UPDATE_IN_PROGRESS"):
        run_deployment(settings=settings, request=deploy_request, adapters=make_adapters(orchestrator))

    assert orchestrator.calls == ["describe"]


def test_build_error_aborts_before_any_remote_call(settings, deploy_request, make_adapters):
    orchestrator = FakeOrchestrator(status="ROLLBACK_COMPLETE")
    adapters = make_adapters(orchestrator, build_environment=FakeBuildEnvironment(fail_build=True))

    with pytest.raises(BuildError):
        run_deployment(settings=settings, request=deploy_request, adapters=adapters)

    assert orchestrator.calls == []


def test_precondition_error_stops_everything(settings, deploy_request, make_adapters):
    orchestrator = FakeOrchestrator(status=None)
    build_environment = FakeBuildEnvironment()
    adapters = make_adapters(
        orchestrator,
        preflight=FakePreflight("docker: Docker daemon is not running."),
        build_environment=build_environment,
    )

    with pytest.raises(PreconditionError):
        run_deployment(settings=settings, request=deploy_request, adapters=adapters)

    assert build_environment.calls == []
    assert orchestrator.calls == []


def test_failing_probes_do_not_fail_the_run(settings, deploy_request, make_adapters):
    responses = mcp_responses(search_text="nothing here")
    responses["initialize"] = {"jsonrpc": "2.0", "id": 1, "error": {"code": -32600, "message": "bad"}}
    adapters = make_adapters(
        FakeOrchestrator(status=None),
        client=FakeProtocolClient(responses),
        status_source=FakeStatusSource(state="Failed"),
    )

    result = run_deployment(settings=settings, request=deploy_request, adapters=adapters)

    outcomes = {r.probe_id: r.outcome for r in result.validations}
    assert outcomes["handshake"] is ProbeOutcome.FAIL
    assert outcomes["functional"] is ProbeOutcome.WARN
    assert outcomes["infrastructure"] is ProbeOutcome.FAIL
    assert len(result.validations) == 5
    assert result.report.failed_count == 2
    assert result.report.warned_count == 1
    assert any("handshake" in w for w in result.warnings)


def test_missing_endpoint_skips_validation(settings, deploy_request, make_adapters, protocol_client):
    orchestrator = FakeOrchestrator(status=None, outputs={"McpFunction": "arn:aws:lambda:r:1:function:f"})

    result = run_deployment(settings=settings, request=deploy_request, adapters=make_adapters(orchestrator))

    assert result.validations == []
    assert protocol_client.calls == []
    assert "McpEndpoint" in result.warnings[0]


def test_skip_validation(settings, deploy_request, make_adapters, protocol_client):
    deploy_request.skip_validation = True

    result = run_deployment(settings=settings, request=deploy_request, adapters=make_adapters(FakeOrchestrator()))

    assert result.validations == []
    assert protocol_client.calls == []


def test_hooks_report_stages_in_order(settings, deploy_request, make_adapters):
    stages = []

    run_deployment(
        settings=settings,
        request=deploy_request,
        adapters=make_adapters(FakeOrchestrator()),
        hooks=PipelineHooks(stage=stages.append),
    )

    assert stages == ["preflight", "build", "reconcile", "deploy", "validate", "report"]


def test_template_path_is_resolved_against_source(settings, deploy_request, make_adapters, source_dir):
    orchestrator = FakeOrchestrator()

    run_deployment(settings=settings, request=deploy_request, adapters=make_adapters(orchestrator))

    assert orchestrator.deploy_kwargs[0]["template_file"] == str(source_dir.resolve() / "template.yaml")


REMOTE_PARAMETERS = {"Environment": "prod", "ApiKey": "****", "Removed": "x"}


@pytest.mark.parametrize("initial", ["UPDATE_COMPLETE", "ROLLBACK_COMPLETE"])
def test_remote_parameters_are_never_sent_back(settings, deploy_request, make_adapters, initial):
    orchestrator = FakeOrchestrator(status=initial, parameters=dict(REMOTE_PARAMETERS))

    result = run_deployment(settings=settings, request=deploy_request, adapters=make_adapters(orchestrator))

    assert orchestrator.deploy_kwargs[0]["parameters"] == {"Environment": "prod"}
    assert result.descriptor.parameters == {"Environment": "prod"}
    assert result.descriptor.state is StackState.HEALTHY


def test_explicit_overrides_are_sent_and_environment_wins(settings, deploy_request, make_adapters):
    orchestrator = FakeOrchestrator(status="UPDATE_COMPLETE", parameters=dict(REMOTE_PARAMETERS))
    deploy_request.parameter_overrides = {"LogLevel": "debug", "Environment": "dev"}

    run_deployment(settings=settings, request=deploy_request, adapters=make_adapters(orchestrator))

    assert orchestrator.deploy_kwargs[0]["parameters"] == {"LogLevel": "debug", "Environment": "prod"}


def test_client_is_closed_after_validation(settings, deploy_request, make_adapters, protocol_client):
    run_deployment(settings=settings, request=deploy_request, adapters=make_adapters(FakeOrchestrator()))

    assert protocol_client.closed


def test_client_factory_failure_is_recorded_not_raised(settings, deploy_request, make_adapters):
    adapters = make_adapters(FakeOrchestrator())

    def broken_factory(endpoint):
        raise ValueError(f"bad endpoint {endpoint}")

    adapters.client_factory = broken_factory

    result = run_deployment(settings=settings, request=deploy_request, adapters=adapters)

    outcomes = {r.probe_id: r.outcome for r in result.validations}
    assert result.descriptor.state is StackState.HEALTHY
    assert len(result.validations) == 5
    assert outcomes["infrastructure"] is ProbeOutcome.PASS
    for probe_id in ("handshake", "capabilities", "functional", "latency"):
        assert outcomes[probe_id] is ProbeOutcome.FAIL
    assert "client setup failed" in result.validations[0].note
    assert result.report.failed_count == 4
