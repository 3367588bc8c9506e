"""Exportación JSON del reporte de despliegue.

Por qué JSON:
- Interoperabilidad con CI y otras herramientas (artefacto del pipeline).
"""

from __future__ import annotations

import json
from pathlib import Path

from core.domain.models import DeploymentReport


def export_report_json(*, report: DeploymentReport, output_path: Path) -> Path:
    """Exporta `DeploymentReport` a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = report.model_dump(mode="json")
    payload["endpoint"] = report.outputs.endpoint
    payload["function_name"] = report.outputs.function_name
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
