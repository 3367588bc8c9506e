"""Entorno de build basado en Docker.

Compila dentro de una imagen con la plataforma de destino (`--platform`), así
el binario sale con la arquitectura y el toolchain del runtime real.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path

from adapters.process import CommandResult, CommandRunner, run_command
from core.domain.errors import BuildError
from core.domain.models import Architecture

logger = logging.getLogger(__name__)


class DockerBuildEnvironment:
    """Implementa `core.interfaces.build.BuildEnvironment` con la CLI de docker."""

    def __init__(self, runner: CommandRunner = run_command, *, docker: str = "docker") -> None:
        self._run = runner
        self._docker = docker

    def build_image(
        self,
        *,
        source_dir: Path,
        architecture: Architecture,
        dockerfile: str,
        tag: str,
    ) -> None:
        result = self._invoke(
            [
                self._docker,
                "build",
                "--platform",
                architecture.docker_platform,
                "-f",
                dockerfile,
                "-t",
                tag,
                ".",
            ],
            cwd=source_dir,
            stream=True,
        )
        if not result.ok:
            raise BuildError(f"docker build failed (exit {result.returncode})\n{result.tail()}".rstrip())

    def copy_out(
        self,
        *,
        tag: str,
        architecture: Architecture,
        path_in_env: str,
        destination: Path,
    ) -> Path:
        container = f"mcp-deploy-extract-{uuid.uuid4().hex[:8]}"
        created = self._invoke(
            [self._docker, "create", "--platform", architecture.docker_platform, "--name", container, tag]
        )
        if not created.ok:
            raise BuildError(f"docker create failed: {created.tail()}")
        try:
            copied = self._invoke([self._docker, "cp", f"{container}:{path_in_env}", str(destination)])
            if not copied.ok:
                raise BuildError(f"Could not extract {path_in_env} from {tag}: {copied.tail()}")
        finally:
            removed = self._invoke([self._docker, "rm", container])
            if not removed.ok:
                logger.warning("Could not remove container %s: %s", container, removed.tail())
        return destination

    def _invoke(self, args: list[str], **kwargs: object) -> CommandResult:
        try:
            return self._run(args, **kwargs)
        except FileNotFoundError as exc:
            raise BuildError(f"{self._docker} executable not found") from exc
