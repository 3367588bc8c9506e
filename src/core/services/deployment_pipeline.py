"""Deployment orchestration.

Wires the stages together in a fixed order:

    preflight -> build -> package -> reconcile -> deploy -> validate -> report

Everything up to deploy is fail-fast: the first `DeploymentError` propagates
to the caller. Validation only produces results and warnings. Side effects
for the UI (progress, warnings) go through `PipelineHooks` so the CLI can
render them without the core printing anything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from core.config import AppSettings
from core.domain.models import (
    Architecture,
    DeploymentBundle,
    DeploymentOutputs,
    DeploymentReport,
    Environment,
    ReconcileAction,
    StackDescriptor,
    ValidationResult,
)
from core.interfaces.build import ArtifactInspector, BuildEnvironment
from core.interfaces.orchestrator import StackOrchestrator
from core.interfaces.preflight import PreflightChecker
from core.interfaces.probes import FunctionStatusSource, ProtocolClient
from core.services.builder import Builder
from core.services.deployer import Deployer
from core.services.packager import Packager
from core.services.reconciler import StackReconciler
from core.services.reporter import build_report
from core.services.validator import UnavailableClient, ValidationHooks, ValidationTarget, Validator

logger = logging.getLogger(__name__)


@dataclass
class DeployRequest:
    """Parameters that control one pipeline run."""

    environment: Environment
    region: str
    stack_name: str
    source_dir: Path
    architecture: Architecture = Architecture.ARM64
    skip_validation: bool = False
    parameter_overrides: dict[str, str] = field(default_factory=dict)


@dataclass
class PipelineAdapters:
    """Concrete collaborators. Tests pass fakes."""

    preflight: PreflightChecker
    build_environment: BuildEnvironment
    inspector: ArtifactInspector
    orchestrator: StackOrchestrator
    client_factory: Callable[[str], ProtocolClient]
    status_source: FunctionStatusSource


@dataclass
class PipelineHooks:
    """Optional callbacks for UI layers (progress, warnings)."""

    stage: Callable[[str], None] | None = None
    warning: Callable[[str], None] | None = None
    probe_done: Callable[[ValidationResult], None] | None = None


@dataclass
class PipelineResult:
    """Output of a pipeline invocation."""

    descriptor: StackDescriptor
    outputs: DeploymentOutputs
    action: ReconcileAction
    bundle: DeploymentBundle
    report: DeploymentReport
    validations: list[ValidationResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def build_bundle(
    *,
    settings: AppSettings,
    source_dir: Path,
    architecture: Architecture,
    build_environment: BuildEnvironment,
    inspector: ArtifactInspector,
) -> DeploymentBundle:
    """Build + package only. Touches nothing remote."""

    builder = Builder(settings=settings, environment=build_environment, inspector=inspector)
    artifact = builder.build(source_dir, architecture)
    return Packager().package(artifact, source_dir)


def validate_deployment(
    *,
    settings: AppSettings,
    outputs: DeploymentOutputs,
    environment: Environment,
    client_factory: Callable[[str], ProtocolClient],
    status_source: FunctionStatusSource,
    hooks: ValidationHooks | None = None,
) -> list[ValidationResult]:
    target = ValidationTarget.from_outputs(
        outputs,
        fallback_function_name=f"{settings.function_name_prefix}-{environment.value}",
    )
    try:
        client = client_factory(target.endpoint)
    except Exception as exc:
        logger.warning("Could not create protocol client for %s: %s", target.endpoint, exc)
        client = UnavailableClient(f"client setup failed: {type(exc).__name__}: {exc}")

    validator = Validator(settings=settings, client=client, status_source=status_source)
    try:
        return validator.run(target, hooks)
    finally:
        client.close()


def run_deployment(
    *,
    settings: AppSettings,
    request: DeployRequest,
    adapters: PipelineAdapters,
    hooks: PipelineHooks | None = None,
) -> PipelineResult:
    hooks = hooks or PipelineHooks()
    warnings: list[str] = []

    def stage(name: str) -> None:
        logger.debug("Stage: %s", name)
        if hooks.stage:
            hooks.stage(name)

    def warn(message: str) -> None:
        warnings.append(message)
        if hooks.warning:
            hooks.warning(message)

    source_dir = request.source_dir.resolve()
    template_file = str(source_dir / settings.template_file)

    stage("preflight")
    adapters.preflight.verify()

    stage("build")
    bundle = build_bundle(
        settings=settings,
        source_dir=source_dir,
        architecture=request.architecture,
        build_environment=adapters.build_environment,
        inspector=adapters.inspector,
    )

    stage("reconcile")
    reconciler = StackReconciler(adapters.orchestrator)
    descriptor = reconciler.describe(
        stack_name=request.stack_name,
        environment=request.environment,
        region=request.region,
        parameters=request.parameter_overrides,
    )
    action, descriptor = reconciler.reconcile(descriptor)

    stage("deploy")
    deployer = Deployer(settings=settings, orchestrator=adapters.orchestrator)
    descriptor, outputs = deployer.deploy(descriptor, action, bundle, template_file=template_file)

    validations: list[ValidationResult] = []
    if request.skip_validation:
        logger.info("Validation skipped by request")
    elif not outputs.has_endpoint:
        warn(f"Stack output {settings.endpoint_output_key!r} is empty; validation skipped.")
    else:
        stage("validate")
        validations = validate_deployment(
            settings=settings,
            outputs=outputs,
            environment=request.environment,
            client_factory=adapters.client_factory,
            status_source=adapters.status_source,
            hooks=ValidationHooks(probe_done=hooks.probe_done),
        )
        for result in validations:
            if not result.passed:
                warn(f"Probe {result.probe_id} failed: {result.note or 'no detail'}")

    stage("report")
    report = build_report(
        descriptor=descriptor,
        outputs=outputs,
        validations=validations,
        action=action,
        warnings=warnings,
    )

    return PipelineResult(
        descriptor=descriptor,
        outputs=outputs,
        action=action,
        bundle=bundle,
        validations=validations,
        warnings=warnings,
        report=report,
    )
