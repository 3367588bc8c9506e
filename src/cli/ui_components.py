"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles entre `deploy` y `validate`.
"""

from __future__ import annotations

import json

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import DeploymentReport, ProbeOutcome, ValidationResult

_OUTCOME_STYLE = {
    ProbeOutcome.PASS: ("PASS", "green"),
    ProbeOutcome.WARN: ("WARN", "yellow"),
    ProbeOutcome.FAIL: ("FAIL", "red"),
}


def print_banner(console: Console, subtitle: str) -> None:
    title = Text("mcp-deploy", style="bold cyan")
    body = Align.center(Text.assemble(title, "\n", Text(subtitle, style="dim")), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def format_probe_line(result: ValidationResult) -> Text:
    label, style = _OUTCOME_STYLE[result.outcome]
    line = Text.assemble((f"[{label}] ", style), (result.probe_id, "bold"))
    if result.latency_ms is not None:
        line.append(f" ({result.latency_ms:.0f}ms)", style="dim")
    if result.note:
        line.append(f" - {result.note}", style="dim")
    return line


def _extracted_summary(result: ValidationResult) -> str:
    data = result.extracted
    if result.probe_id == "handshake":
        if data.get("server_name") or data.get("server_version"):
            return f"Server: {data.get('server_name') or '?'} v{data.get('server_version') or '?'}"
        return ""
    if result.probe_id == "capabilities":
        tools = ", ".join(data.get("tools") or [])
        return f"{data.get('tool_count', 0)} tools" + (f": {tools}" if tools else "")
    if result.probe_id == "functional":
        return "relevant content" if data.get("relevant") else "limited relevance"
    if result.probe_id == "infrastructure":
        if data.get("runtime"):
            return (
                f"{data.get('state')} | {data.get('architecture')} | {data.get('runtime')} | "
                f"{data.get('memory_mb')}MB"
            )
        return str(data.get("state") or "")
    if result.probe_id == "latency" and data.get("round_trip_ms") is not None:
        return f"{data['round_trip_ms']:.0f}ms"
    return json.dumps(data, default=str) if data else ""


def build_validation_table(results: list[ValidationResult]) -> Table:
    table = Table(title="Validation")
    table.add_column("Probe", style="cyan", no_wrap=True)
    table.add_column("Result", no_wrap=True)
    table.add_column("Details", style="white")
    table.add_column("Note", style="dim")
    for result in results:
        label, style = _OUTCOME_STYLE[result.outcome]
        table.add_row(
            result.probe_id,
            Text(label, style=style),
            _extracted_summary(result),
            result.note or "",
        )
    return table


def build_outputs_table(report: DeploymentReport) -> Table:
    table = Table(title="Stack Outputs")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="magenta")
    for key in sorted(report.outputs.values):
        table.add_row(key, report.outputs.values[key])
    return table


def build_stack_panel(report: DeploymentReport) -> Panel:
    d = report.descriptor
    body = Text()
    body.append(f"Stack:       {d.stack_name}\n")
    body.append(f"Environment: {d.environment.value}\n")
    body.append(f"Region:      {d.region}\n")
    body.append(f"Status:      {d.status or 'absent'} ({d.state.value})")
    if report.action:
        body.append(f"\nAction:      {report.action.value}", style="dim")
    return Panel(body, title=Text("Deployment", style="bold green"), border_style="green")


def build_summary_panel(report: DeploymentReport) -> Panel:
    body = Text()
    body.append(f"{report.passed_count} passed", style="green")
    body.append(" / ")
    body.append(f"{report.warned_count} warned", style="yellow")
    body.append(" / ")
    body.append(f"{report.failed_count} failed", style="red")
    for warning in report.warnings:
        body.append(f"\n- {warning}", style="yellow")
    border = "red" if report.failed_count else ("yellow" if report.warned_count else "green")
    return Panel(body, title="Validation summary", border_style=border)


def build_next_steps_panel(report: DeploymentReport, *, protocol_version: str) -> Panel:
    endpoint = report.outputs.endpoint or "<endpoint>"
    function = report.outputs.function_name or "<function>"
    payload = json.dumps(
        {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "initialize",
            "params": {
                "protocolVersion": protocol_version,
                "capabilities": {},
                "clientInfo": {"name": "test", "version": "1.0"},
            },
        }
    )
    body = Text()
    body.append("1. Configure your MCP client with the endpoint URL:\n", style="bold")
    body.append(f"   {endpoint}\n\n")
    body.append("2. Try it with curl:\n", style="bold")
    body.append(f"   curl -X POST '{endpoint}' -H 'Content-Type: application/json' \\\n")
    body.append(f"     -d '{payload}'\n\n")
    body.append("3. Follow the function logs:\n", style="bold")
    body.append(f"   aws logs tail /aws/lambda/{function} --follow --region {report.descriptor.region}")
    return Panel(body, title="Next steps", border_style="cyan")


def render_report(console: Console, report: DeploymentReport, *, protocol_version: str) -> None:
    console.print(build_stack_panel(report))
    if report.outputs.values:
        console.print(build_outputs_table(report))
    if report.validations:
        console.print(build_validation_table(report.validations))
    console.print(build_summary_panel(report))
    if report.outputs.has_endpoint:
        console.print(build_next_steps_panel(report, protocol_version=protocol_version))
