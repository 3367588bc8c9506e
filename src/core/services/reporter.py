"""Aggregate pipeline results into a `DeploymentReport`.

No decisions are made here; rendering lives in the CLI layer.
"""

from __future__ import annotations

from typing import Iterable

from core.domain.models import (
    DeploymentOutputs,
    DeploymentReport,
    ProbeOutcome,
    ReconcileAction,
    StackDescriptor,
    ValidationResult,
)


def build_report(
    *,
    descriptor: StackDescriptor,
    outputs: DeploymentOutputs,
    validations: Iterable[ValidationResult] = (),
    action: ReconcileAction | None = None,
    warnings: Iterable[str] = (),
) -> DeploymentReport:
    results = list(validations)
    return DeploymentReport(
        descriptor=descriptor,
        outputs=outputs,
        action=action,
        validations=results,
        warnings=list(warnings),
        passed_count=sum(1 for r in results if r.outcome is ProbeOutcome.PASS),
        warned_count=sum(1 for r in results if r.outcome is ProbeOutcome.WARN),
        failed_count=sum(1 for r in results if r.outcome is ProbeOutcome.FAIL),
    )
