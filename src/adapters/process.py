"""Wrapper de subprocess para las CLIs externas (docker, sam).

Por qué un wrapper:
- Estandariza captura de salida, timeouts y logging de comandos.
- Facilita testeo: los adaptadores reciben un `CommandRunner` y los tests
  inyectan uno falso que registra llamadas.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def tail(self, lines: int = 20) -> str:
        """Last lines of stderr (or stdout) for error messages."""

        text = self.stderr.strip() or self.stdout.strip()
        return "\n".join(text.splitlines()[-lines:])


CommandRunner = Callable[..., CommandResult]


def run_command(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    timeout: float | None = None,
    stream: bool = False,
) -> CommandResult:
    """Ejecuta un comando y devuelve su resultado sin lanzar por exit code.

    `stream=True` deja la salida en la terminal (builds y deploys largos);
    en ese caso stdout/stderr del resultado quedan vacíos.

    Raises:
        FileNotFoundError: el ejecutable no existe.
        subprocess.TimeoutExpired: se agotó `timeout`.
    """

    argv = [str(a) for a in args]
    logger.debug("$ %s", " ".join(argv))
    completed = subprocess.run(
        argv,
        cwd=str(cwd) if cwd else None,
        capture_output=not stream,
        text=True,
        timeout=timeout,
        check=False,
    )
    return CommandResult(
        args=argv,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
