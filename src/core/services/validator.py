"""Protocol smoke-test harness.

Runs a fixed sequence of independent probes against a deployed endpoint and
the platform's own status API. A probe that fails is recorded and the next one
runs anyway: this stage is diagnostic and never aborts the pipeline. Results
are returned as a list and judged by the caller once at the end.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from core.config import AppSettings
from core.domain.errors import ProtocolError, ValidationWarning
from core.domain.models import (
    DeploymentOutputs,
    ProbeOutcome,
    ProtocolProbe,
    ValidationResult,
)
from core.domain.protocol import RpcError, RpcResponse, RpcResult
from core.interfaces.probes import FunctionStatusSource, ProtocolClient

logger = logging.getLogger(__name__)

PROBE_ORDER: tuple[str, ...] = (
    "handshake",
    "capabilities",
    "functional",
    "infrastructure",
    "latency",
)


@dataclass
class ValidationTarget:
    """What the probes need to know about the deployment."""

    endpoint: str
    function_name: str | None = None

    @classmethod
    def from_outputs(cls, outputs: DeploymentOutputs, *, fallback_function_name: str | None = None) -> "ValidationTarget":
        if not outputs.has_endpoint:
            raise ValueError("Deployment outputs carry no endpoint; nothing to validate.")
        return cls(
            endpoint=outputs.endpoint or "",
            function_name=outputs.function_name or fallback_function_name,
        )


@dataclass
class ValidationHooks:
    """Optional callback fired after each probe (UI progress)."""

    probe_done: Callable[[ValidationResult], None] | None = None


class UnavailableClient:
    """Stands in for a client that could not be created.

    Every call fails like a transport error, so protocol probes record FAIL
    while the platform status probe still runs.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason

    def call(self, method: str, params: dict[str, Any] | None = None) -> RpcResponse:
        raise ProtocolError(f"{method}: {self.reason}")

    def close(self) -> None:
        pass


@dataclass
class _ProbeContext:
    target: ValidationTarget
    extracted: dict[str, Any] = field(default_factory=dict)
    note: str | None = None
    latency_ms: float | None = None
    outcome: ProbeOutcome = ProbeOutcome.PASS


def handshake_probe(settings: AppSettings, *, client_name: str | None = None) -> ProtocolProbe:
    return ProtocolProbe(
        probe_id="handshake",
        method="initialize",
        params={
            "protocolVersion": settings.protocol_version,
            "capabilities": {},
            "clientInfo": {
                "name": client_name or settings.client_name,
                "version": settings.client_version,
            },
        },
    )


class Validator:
    def __init__(
        self,
        *,
        settings: AppSettings,
        client: ProtocolClient,
        status_source: FunctionStatusSource,
    ) -> None:
        self._settings = settings
        self._client = client
        self._status_source = status_source

    def run(self, target: ValidationTarget, hooks: ValidationHooks | None = None) -> list[ValidationResult]:
        if not target.endpoint.strip():
            raise ValueError("Validator requires a non-empty endpoint.")

        hooks = hooks or ValidationHooks()
        results: list[ValidationResult] = []
        for probe_id in PROBE_ORDER:
            step: Callable[[_ProbeContext], None] = getattr(self, f"_{probe_id}")
            result = self._run_probe(probe_id, step, target)
            results.append(result)
            if hooks.probe_done:
                hooks.probe_done(result)
        return results

    def _run_probe(
        self,
        probe_id: str,
        step: Callable[[_ProbeContext], None],
        target: ValidationTarget,
    ) -> ValidationResult:
        ctx = _ProbeContext(target=target)
        try:
            step(ctx)
        except ValidationWarning as exc:
            logger.warning("Probe %s failed: %s", probe_id, exc)
            return ValidationResult(probe_id=probe_id, outcome=ProbeOutcome.FAIL, note=str(exc), latency_ms=ctx.latency_ms)
        except Exception as exc:
            logger.warning("Probe %s errored: %s: %s", probe_id, type(exc).__name__, exc)
            return ValidationResult(
                probe_id=probe_id,
                outcome=ProbeOutcome.FAIL,
                note=f"{type(exc).__name__}: {exc}",
                latency_ms=ctx.latency_ms,
            )

        logger.info("Probe %s: %s", probe_id, ctx.outcome.value)
        return ValidationResult(
            probe_id=probe_id,
            outcome=ctx.outcome,
            extracted=ctx.extracted,
            latency_ms=ctx.latency_ms,
            note=ctx.note,
        )

    def _call(self, ctx: _ProbeContext, probe: ProtocolProbe) -> RpcResponse:
        started = time.perf_counter()
        response = self._client.call(probe.method, probe.params)
        ctx.latency_ms = round((time.perf_counter() - started) * 1000, 1)
        return response

    def _require_result(self, response: RpcResponse, what: str) -> RpcResult:
        if isinstance(response, RpcError):
            raise ValidationWarning(f"{what}: {response.message}")
        return response

    def _handshake(self, ctx: _ProbeContext) -> None:
        result = self._require_result(self._call(ctx, handshake_probe(self._settings)), "initialize")
        ctx.extracted["server_name"] = result.server_name
        ctx.extracted["server_version"] = result.server_version
        if result.protocol_version:
            ctx.extracted["protocol_version"] = result.protocol_version

    def _capabilities(self, ctx: _ProbeContext) -> None:
        probe = ProtocolProbe(probe_id="capabilities", method="tools/list")
        result = self._require_result(self._call(ctx, probe), "tools/list")
        if not result.has_tools:
            raise ValidationWarning("tools/list result has no 'tools' collection")
        names = result.tool_names
        ctx.extracted["tool_count"] = len(names)
        ctx.extracted["tools"] = names

    def _functional(self, ctx: _ProbeContext) -> None:
        probe = ProtocolProbe(
            probe_id="functional",
            method="tools/call",
            params={"name": self._settings.probe_tool, "arguments": dict(self._settings.probe_arguments)},
        )
        result = self._require_result(self._call(ctx, probe), f"tools/call {self._settings.probe_tool}")
        keyword = self._settings.probe_keyword
        relevant = keyword.lower() in result.text_content.lower()
        ctx.extracted["tool"] = self._settings.probe_tool
        ctx.extracted["keyword"] = keyword
        ctx.extracted["relevant"] = relevant
        if result.is_tool_error:
            ctx.extracted["tool_error"] = True
        if not relevant:
            ctx.outcome = ProbeOutcome.WARN
            ctx.note = f"Completed, but results may have limited relevance (no {keyword!r} in body)"

    def _infrastructure(self, ctx: _ProbeContext) -> None:
        name = ctx.target.function_name
        if not name:
            raise ValidationWarning("No function name available for the platform status query")
        status = self._status_source.get_function_status(name)
        ctx.extracted["function_name"] = status.function_name
        ctx.extracted["state"] = status.state
        if status.state != self._settings.expected_function_state:
            raise ValidationWarning(f"Function {name} state is {status.state or 'unknown'}")
        ctx.extracted.update(
            {
                "architecture": status.architecture,
                "runtime": status.runtime,
                "memory_mb": status.memory_size,
                "timeout_s": status.timeout,
                "code_size": status.code_size,
            }
        )

    def _latency(self, ctx: _ProbeContext) -> None:
        probe = handshake_probe(self._settings, client_name=f"{self._settings.client_name}-perf")
        self._call(ctx, probe)
        ctx.extracted["round_trip_ms"] = ctx.latency_ms
