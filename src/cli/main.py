"""CLI entry point (Typer).

Commands:
- `deploy`: build, package, reconcile, deploy and smoke-test.
- `validate`: smoke-test a stack that is already deployed.
- `build`: build + package only (no AWS calls).
- `doctor`: diagnostics and persisted defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import boto3
import typer
from pydantic import ValidationError
from rich.console import Console

from adapters.cloudformation import CloudFormationOrchestrator
from adapters.docker_build import DockerBuildEnvironment
from adapters.elf_inspector import ElfInspector
from adapters.http_client import JsonRpcHttpClient, build_client
from adapters.json_exporter import export_report_json
from adapters.lambda_status import LambdaStatusSource
from adapters.preflight import ToolingPreflight
from cli import doctor
from cli.ui_components import format_probe_line, print_banner, render_report
from core.config import AppSettings
from core.domain.errors import DeploymentError
from core.domain.models import Architecture, DeploymentReport, Environment, ValidationResult
from core.logging_config import configure_logging
from core.services.deployment_pipeline import (
    DeployRequest,
    PipelineAdapters,
    PipelineHooks,
    build_bundle,
    run_deployment,
    validate_deployment,
)
from core.services.deployer import outputs_from_remote
from core.services.reconciler import to_descriptor
from core.services.reporter import build_report
from core.services.validator import ValidationHooks

app = typer.Typer(
    no_args_is_help=True,
    help="Build, deploy and smoke-test an MCP server on AWS Lambda.",
    context_settings={"help_option_names": ["-h", "--help"]},
)
app.add_typer(doctor.app, name="doctor")

_console = Console()


def load_settings() -> AppSettings:
    try:
        return AppSettings()
    except ValidationError as exc:
        _console.print(f"[red]Invalid configuration:[/red]\n{exc}")
        raise typer.Exit(code=2) from exc


def build_adapters(settings: AppSettings, region: str) -> PipelineAdapters:
    """Real adapters: docker, SAM/CloudFormation, Lambda, httpx."""

    session = boto3.session.Session(region_name=region)
    return PipelineAdapters(
        preflight=ToolingPreflight(sts_client_factory=lambda: session.client("sts")),
        build_environment=DockerBuildEnvironment(),
        inspector=ElfInspector(),
        orchestrator=CloudFormationOrchestrator(
            settings=settings,
            client=session.client("cloudformation"),
            region=region,
        ),
        client_factory=lambda endpoint: JsonRpcHttpClient(endpoint, build_client(settings)),
        status_source=LambdaStatusSource(session.client("lambda")),
    )


def parse_parameters(pairs: list[str]) -> dict[str, str]:
    parsed: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected KEY=VALUE, got {pair!r}", param_hint="--parameter")
        parsed[key.strip()] = value
    return parsed


def _print_probe(result: ValidationResult) -> None:
    _console.print(format_probe_line(result))


def _fail(exc: DeploymentError) -> typer.Exit:
    _console.print(f"[red]✗ {exc.stage} failed:[/red] {exc}")
    return typer.Exit(code=exc.exit_code)



def _save_report(report: DeploymentReport, path: Path) -> None:
    """A report that cannot be written is a warning; the exit status stays with the deploy."""

    try:
        saved = export_report_json(report=report, output_path=path)
    except OSError as exc:
        _console.print(f"[yellow]⚠ Could not write report to {path}: {exc}[/yellow]")
        return
    _console.print(f"[green]Report saved to:[/green] {saved}")

_ENV_OPTION = typer.Option(
    None,
    "--environment",
    "-e",
    case_sensitive=False,
    help="Deployment environment [default: $ENVIRONMENT or prod].",
)
_REGION_OPTION = typer.Option(None, "--region", "-r", help="AWS region [default: $AWS_REGION or us-east-1].")
_STACK_OPTION = typer.Option(
    None,
    "--stack-name",
    "-s",
    help="Base stack name; the environment is appended.",
)
_VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Debug logging.")


@app.command()
def deploy(
    environment: Optional[Environment] = _ENV_OPTION,
    region: Optional[str] = _REGION_OPTION,
    stack_name: Optional[str] = _STACK_OPTION,
    source: Path = typer.Option(Path("."), "--source", help="Service source tree (Dockerfile + template)."),
    architecture: Optional[Architecture] = typer.Option(None, "--arch", help="Target architecture."),
    skip_validation: bool = typer.Option(False, "--skip-validation", help="Deploy only, no probes."),
    parameter: Optional[list[str]] = typer.Option(
        None,
        "--parameter",
        "-p",
        help="Extra template parameter KEY=VALUE (repeatable). Environment is always set.",
    ),
    report_json: Optional[Path] = typer.Option(None, "--report-json", help="Write the report as JSON."),
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Build, deploy and validate. Exit status reflects the deploy stage only."""

    settings = load_settings()
    configure_logging(settings.log_level, verbose=verbose)

    env = environment or settings.environment
    region = region or settings.region
    full_name = settings.full_stack_name(stack_name, env)

    print_banner(_console, f"Deploying {full_name} to {region}")

    request = DeployRequest(
        environment=env,
        region=region,
        stack_name=full_name,
        source_dir=source,
        architecture=architecture or settings.architecture,
        skip_validation=skip_validation,
        parameter_overrides=parse_parameters(parameter or []),
    )
    hooks = PipelineHooks(
        stage=lambda name: _console.print(f"[bold cyan]→ {name}[/bold cyan]"),
        warning=lambda message: _console.print(f"[yellow]⚠ {message}[/yellow]"),
        probe_done=_print_probe,
    )

    try:
        result = run_deployment(
            settings=settings,
            request=request,
            adapters=build_adapters(settings, region),
            hooks=hooks,
        )
    except DeploymentError as exc:
        raise _fail(exc) from exc

    render_report(_console, result.report, protocol_version=settings.protocol_version)
    if report_json:
        _save_report(result.report, report_json)
    _console.print("[bold green]✓ Deployment completed[/bold green]")


@app.command()
def validate(
    environment: Optional[Environment] = _ENV_OPTION,
    region: Optional[str] = _REGION_OPTION,
    stack_name: Optional[str] = _STACK_OPTION,
    strict: bool = typer.Option(False, "--strict", help="Exit 1 if any probe fails."),
    report_json: Optional[Path] = typer.Option(None, "--report-json", help="Write the report as JSON."),
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Smoke-test an already deployed stack."""

    settings = load_settings()
    configure_logging(settings.log_level, verbose=verbose)

    env = environment or settings.environment
    region = region or settings.region
    full_name = settings.full_stack_name(stack_name, env)
    adapters = build_adapters(settings, region)

    try:
        remote = adapters.orchestrator.describe_stack(full_name)
    except DeploymentError as exc:
        raise _fail(exc) from exc

    descriptor = to_descriptor(remote, stack_name=full_name, environment=env, region=region, parameters=None)
    outputs = outputs_from_remote(remote, settings)
    if not outputs.has_endpoint:
        _console.print(f"[red]✗ Could not find the MCP endpoint for {full_name}. Is the stack deployed?[/red]")
        raise typer.Exit(code=1)

    _console.print(f"[cyan]Endpoint:[/cyan] {outputs.endpoint}")
    results = validate_deployment(
        settings=settings,
        outputs=outputs,
        environment=env,
        client_factory=adapters.client_factory,
        status_source=adapters.status_source,
        hooks=ValidationHooks(probe_done=_print_probe),
    )
    warnings = [f"Probe {r.probe_id} failed: {r.note or 'no detail'}" for r in results if not r.passed]
    report = build_report(descriptor=descriptor, outputs=outputs, validations=results, warnings=warnings)
    render_report(_console, report, protocol_version=settings.protocol_version)
    if report_json:
        _save_report(report, report_json)

    if strict and report.failed_count:
        raise typer.Exit(code=1)


@app.command()
def build(
    source: Path = typer.Option(Path("."), "--source", help="Service source tree."),
    architecture: Optional[Architecture] = typer.Option(None, "--arch", help="Target architecture."),
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Build and package the bundle locally (no AWS calls)."""

    settings = load_settings()
    configure_logging(settings.log_level, verbose=verbose)

    try:
        bundle = build_bundle(
            settings=settings,
            source_dir=source.resolve(),
            architecture=architecture or settings.architecture,
            build_environment=DockerBuildEnvironment(),
            inspector=ElfInspector(),
        )
    except DeploymentError as exc:
        raise _fail(exc) from exc

    _console.print(f"[green]✓ Executable:[/green] {bundle.executable_path}")
    _console.print(f"[green]✓ Bundle:[/green] {bundle.archive_path} (entry: {bundle.entry_name})")


def run() -> None:
    app()
