"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (Docker/SAM/HTTP) lean config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.models import Architecture, Environment


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "mcp-deploy"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "mcp-deploy"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "mcp-deploy"
    return Path.home() / ".config" / "mcp-deploy"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str | None], env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# mcp-deploy user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central del despliegue.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - `AWS_REGION` y `ENVIRONMENT` se aceptan tal cual para convivir con el
      resto del tooling de AWS.
    """

    model_config = SettingsConfigDict(
        env_prefix="MCP_DEPLOY_",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    # Destino
    region: str = Field(
        default="us-east-1",
        min_length=1,
        validation_alias=AliasChoices("MCP_DEPLOY_REGION", "AWS_REGION"),
        description="Región AWS del stack.",
    )
    environment: Environment = Field(
        default=Environment.PROD,
        validation_alias=AliasChoices("MCP_DEPLOY_ENVIRONMENT", "ENVIRONMENT"),
        description="Entorno de despliegue (dev|staging|prod).",
    )
    stack_name: str = Field(
        default="mcp-server-rust",
        min_length=1,
        max_length=100,
        description="Nombre base del stack; el entorno se añade como sufijo.",
    )
    project_tag: str = Field(
        default="mcp-server",
        min_length=1,
        description="Valor del tag `Project` aplicado al stack.",
    )
    architecture: Architecture = Field(
        default=Architecture.ARM64,
        description="Arquitectura del binario y de la función Lambda.",
    )

    # Build / empaquetado
    template_file: str = Field(default="template.yaml", min_length=1)
    dockerfile: str = Field(default="Dockerfile.lambda", min_length=1)
    image_tag: str = Field(default="mcp-server-build", min_length=1)
    artifact_path_in_env: str = Field(
        default="/var/runtime/bootstrap",
        min_length=1,
        description="Ruta fija del ejecutable dentro de la imagen de build.",
    )

    # Outputs del stack (consulta estructurada)
    endpoint_output_key: str = Field(default="McpEndpoint", min_length=1)
    api_output_key: str = Field(default="McpApi", min_length=1)
    function_output_key: str = Field(default="McpFunction", min_length=1)
    function_name_prefix: str = Field(
        default="mcp-server",
        min_length=1,
        description="Prefijo usado si el ARN de la función no está en los outputs.",
    )

    # Validación (probes)
    protocol_version: str = Field(default="2024-11-05", min_length=1)
    client_name: str = Field(default="mcp-deploy", min_length=1)
    client_version: str = Field(default="1.0", min_length=1)
    probe_tool: str = Field(default="search", min_length=1)
    probe_arguments: dict[str, object] = Field(
        default_factory=lambda: {"query": "rust programming language", "topn": 3},
    )
    probe_keyword: str = Field(default="rust", min_length=1)
    expected_function_state: str = Field(default="Active", min_length=1)
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout por request de validación (segundos).",
    )
    user_agent: str = Field(default="mcp-deploy/0.1", min_length=1)

    # Esperas remotas (acotadas)
    wait_delay_seconds: int = Field(default=15, ge=0, le=600)
    wait_max_attempts: int = Field(default=240, ge=1, le=10_000)
    deploy_timeout_seconds: float = Field(default=3600.0, gt=0)

    log_level: str = Field(default="INFO", min_length=1)

    def full_stack_name(self, stack_name: str | None = None, environment: Environment | None = None) -> str:
        base = stack_name or self.stack_name
        env = environment or self.environment
        return f"{base}-{env.value}"
