"""Doctor command for environment diagnostics."""

from __future__ import annotations

from typing import Optional

import boto3
import typer
from rich.console import Console
from rich.table import Table

from adapters.preflight import ToolingPreflight
from core.config import AppSettings, get_user_env_file, write_user_env_vars
from core.domain.models import Environment

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def build_preflight(region: str) -> ToolingPreflight:
    session = boto3.session.Session(region_name=region)
    return ToolingPreflight(sts_client_factory=lambda: session.client("sts"))


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="mcp-deploy Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("Region", "OK", settings.region)
    table.add_row("Environment", "OK", settings.environment.value)
    table.add_row("Stack", "OK", settings.full_stack_name())
    table.add_row("Architecture", "OK", settings.architecture.value)
    table.add_row("User config", "OK" if get_user_env_file().exists() else "NONE", str(get_user_env_file()))

    # Tooling (best-effort, never raises)
    checks = build_preflight(settings.region).check_all()
    for check in checks:
        table.add_row(check.name, "OK" if check.ok else "FAIL", check.detail)

    _console.print(table)

    if not all(check.ok for check in checks):
        _console.print("\n[yellow]Note:[/yellow] `deploy` stops before any AWS change while a check fails.")
        raise typer.Exit(code=2)


@app.command()
def configure(
    region: Optional[str] = typer.Option(None, "--region", "-r", help="Default AWS region."),
    environment: Optional[Environment] = typer.Option(None, "--environment", "-e", help="Default environment."),
    stack_name: Optional[str] = typer.Option(None, "--stack-name", "-s", help="Default base stack name."),
) -> None:
    """Persist deployment defaults in the user config .env."""

    if region is None and environment is None and stack_name is None:
        region = typer.prompt("AWS region", default=AppSettings().region, show_default=True).strip()

    env_path = write_user_env_vars(
        {
            "MCP_DEPLOY_REGION": region,
            "MCP_DEPLOY_ENVIRONMENT": environment.value if environment else None,
            "MCP_DEPLOY_STACK_NAME": stack_name,
        }
    )
    _console.print(f"[green]Saved defaults to:[/green] {env_path}")
