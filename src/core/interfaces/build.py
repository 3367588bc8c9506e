"""Contratos del entorno de build.

Por qué Protocol:
- El build ocurre en un entorno aislado (contenedor con la arquitectura
  correcta). El Core solo necesita "construir" y "copiar fuera".
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from core.domain.models import Architecture


@runtime_checkable
class BuildEnvironment(Protocol):
    """Entorno reproducible donde se compila el ejecutable."""

    def build_image(
        self,
        *,
        source_dir: Path,
        architecture: Architecture,
        dockerfile: str,
        tag: str,
    ) -> None:
        """Compila el código fuente dentro del entorno. Falla con `BuildError`."""

        ...

    def copy_out(
        self,
        *,
        tag: str,
        architecture: Architecture,
        path_in_env: str,
        destination: Path,
    ) -> Path:
        """Copia el artefacto desde su ruta fija en el entorno hacia `destination`."""

        ...


@runtime_checkable
class ArtifactInspector(Protocol):
    """Lee la arquitectura real de un ejecutable."""

    def machine_architecture(self, path: Path) -> str:
        ...
