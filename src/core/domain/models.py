"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a Docker, boto3 ni httpx.
- Facilita serializar el reporte final (JSON) sin código adicional.

Nota:
- Estos modelos describen *qué* se despliega y *qué* se observó, no *cómo*.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class Environment(str, Enum):
    """Entornos de despliegue admitidos (conjunto cerrado)."""

    DEV = "dev"
    STAGING = "staging"
    PROD = "prod"


class Architecture(str, Enum):
    """Arquitecturas de CPU soportadas por el runtime de la función."""

    ARM64 = "arm64"
    X86_64 = "x86_64"

    @property
    def docker_platform(self) -> str:
        return "linux/arm64" if self is Architecture.ARM64 else "linux/amd64"

    @property
    def elf_machine(self) -> str:
        """Nombre que devuelve pyelftools (`get_machine_arch`) para esta arquitectura."""

        return "AArch64" if self is Architecture.ARM64 else "x64"


class StackState(str, Enum):
    """Clasificación del estado remoto de un stack."""

    ABSENT = "ABSENT"
    HEALTHY = "HEALTHY"
    POISONED = "POISONED"
    OTHER = "OTHER"


class ReconcileAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    RECREATE = "recreate"


class ProbeOutcome(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


class BuildArtifact(BaseModel):
    """Ejecutable compilado y la arquitectura para la que fue construido."""

    path: Path = Field(..., description="Ruta local del ejecutable extraído.")
    architecture: Architecture = Field(..., description="Arquitectura verificada del binario.")


class DeploymentBundle(BaseModel):
    """Artefacto envuelto con el nombre de entrada fijo que exige el runtime.

    Efímero: se reconstruye en cada ejecución.
    """

    artifact: BuildArtifact
    executable_path: Path = Field(..., description="Copia del ejecutable en el staging.")
    archive_path: Path = Field(..., description="Zip con una única entrada `bootstrap`.")
    entry_name: str = Field(..., min_length=1)


class RemoteStack(BaseModel):
    """Lo que devuelve el servicio de orquestación para un stack existente."""

    name: str = Field(..., min_length=1)
    status: str = Field(..., min_length=1)
    status_reason: str | None = None
    outputs: dict[str, str] = Field(default_factory=dict)
    parameters: dict[str, str] = Field(default_factory=dict)


class StackDescriptor(BaseModel):
    """Estado observado de un stack. Vive en remoto; aquí nunca se cachea."""

    stack_name: str = Field(..., min_length=1)
    environment: Environment
    region: str = Field(..., min_length=1)
    parameters: dict[str, str] = Field(
        default_factory=dict,
        description="Parámetros que esta herramienta envía (Environment + overrides explícitos).",
    )
    remote_parameters: dict[str, str] = Field(
        default_factory=dict,
        description="Parámetros reportados por el stack remoto. Solo observación: nunca se reenvían.",
    )
    status: str | None = Field(
        default=None,
        description="Estado crudo devuelto por CloudFormation (None si no existe).",
    )
    state: StackState = StackState.ABSENT


class DeploymentOutputs(BaseModel):
    """Outputs nombrados del stack tras un despliegue terminal exitoso.

    Ausencia (mapa vacío / endpoint vacío) significa "todavía no desplegado".
    """

    model_config = ConfigDict(frozen=True)

    values: dict[str, str] = Field(default_factory=dict)
    endpoint_key: str = "McpEndpoint"
    api_key: str = "McpApi"
    function_key: str = "McpFunction"

    def get(self, key: str) -> str | None:
        value = self.values.get(key)
        return value or None

    @property
    def endpoint(self) -> str | None:
        return self.get(self.endpoint_key)

    @property
    def api_url(self) -> str | None:
        return self.get(self.api_key)

    @property
    def function_arn(self) -> str | None:
        return self.get(self.function_key)

    @property
    def function_name(self) -> str | None:
        """Nombre de la función a partir del ARN (`arn:aws:lambda:<region>:<acct>:function:<name>`)."""

        arn = self.function_arn
        if not arn:
            return None
        parts = arn.split(":")
        if len(parts) >= 7 and parts[6]:
            return parts[6]
        return arn

    @property
    def has_endpoint(self) -> bool:
        return bool(self.endpoint and self.endpoint.strip())


class FunctionStatus(BaseModel):
    """Estado de la función según el canal de estado de la plataforma."""

    model_config = ConfigDict(extra="ignore")

    function_name: str
    state: str | None = None
    architecture: str | None = None
    runtime: str | None = None
    memory_size: int | None = None
    timeout: int | None = None
    code_size: int | None = None


class ProtocolProbe(BaseModel):
    """Plantilla de request de un probe JSON-RPC."""

    probe_id: str = Field(..., min_length=1)
    method: str = Field(..., min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    """Resultado de un probe individual."""

    probe_id: str = Field(..., min_length=1)
    outcome: ProbeOutcome
    extracted: dict[str, Any] = Field(default_factory=dict)
    latency_ms: float | None = Field(default=None, ge=0)
    note: str | None = None

    @property
    def passed(self) -> bool:
        return self.outcome is not ProbeOutcome.FAIL


class DeploymentReport(BaseModel):
    """Agregado final para el operador (tablas Rich o export JSON)."""

    descriptor: StackDescriptor
    outputs: DeploymentOutputs
    action: ReconcileAction | None = None
    validations: list[ValidationResult] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    passed_count: int = 0
    warned_count: int = 0
    failed_count: int = 0
