"""Lectura de la arquitectura real del ejecutable (pyelftools)."""

from __future__ import annotations

from pathlib import Path

from elftools.common.exceptions import ELFError
from elftools.elf.elffile import ELFFile

from core.domain.errors import BuildError


class ElfInspector:
    """Implementa `core.interfaces.build.ArtifactInspector`."""

    def machine_architecture(self, path: Path) -> str:
        try:
            with path.open("rb") as stream:
                return ELFFile(stream).get_machine_arch()
        except ELFError as exc:
            raise BuildError(f"{path} is not an ELF executable: {exc}") from exc
