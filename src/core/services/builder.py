"""Artifact build stage.

Compiles the service inside an architecture-matched build environment and
pulls the executable out to a local output directory. Every failure here is a
`BuildError` and happens before anything remote is touched.
"""

from __future__ import annotations

import logging
import shutil
import stat
from pathlib import Path

from core.config import AppSettings
from core.domain.errors import BuildError
from core.domain.models import Architecture, BuildArtifact
from core.interfaces.build import ArtifactInspector, BuildEnvironment

logger = logging.getLogger(__name__)

OUTPUT_DIR = Path("target") / "docker-build"


class Builder:
    def __init__(
        self,
        *,
        settings: AppSettings,
        environment: BuildEnvironment,
        inspector: ArtifactInspector,
    ) -> None:
        self._settings = settings
        self._environment = environment
        self._inspector = inspector

    def output_dir(self, source_dir: Path) -> Path:
        return source_dir / OUTPUT_DIR

    def build(self, source_dir: Path, architecture: Architecture) -> BuildArtifact:
        if not source_dir.is_dir():
            raise BuildError(f"Source directory not found: {source_dir}")

        dockerfile = source_dir / self._settings.dockerfile
        if not dockerfile.is_file():
            raise BuildError(f"Build definition not found: {dockerfile}")

        out_dir = self.output_dir(source_dir)
        if out_dir.exists():
            logger.debug("Removing stale build output %s", out_dir)
            shutil.rmtree(out_dir)
        out_dir.mkdir(parents=True)

        logger.info("Building %s image for %s", self._settings.image_tag, architecture.docker_platform)
        self._environment.build_image(
            source_dir=source_dir,
            architecture=architecture,
            dockerfile=self._settings.dockerfile,
            tag=self._settings.image_tag,
        )

        artifact_name = Path(self._settings.artifact_path_in_env).name
        path = self._environment.copy_out(
            tag=self._settings.image_tag,
            architecture=architecture,
            path_in_env=self._settings.artifact_path_in_env,
            destination=out_dir / artifact_name,
        )

        self._check_artifact(path, architecture)
        logger.info("Artifact ready: %s (%d bytes)", path, path.stat().st_size)
        return BuildArtifact(path=path, architecture=architecture)

    def _check_artifact(self, path: Path, architecture: Architecture) -> None:
        if not path.is_file():
            raise BuildError(f"Build finished but no artifact at {path}")

        mode = path.stat().st_mode
        if not mode & stat.S_IXUSR:
            path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

        try:
            machine = self._inspector.machine_architecture(path)
        except BuildError:
            raise
        except Exception as exc:
            raise BuildError(f"Could not read architecture of {path}: {exc}") from exc

        if machine != architecture.elf_machine:
            raise BuildError(
                f"Artifact architecture mismatch: built {machine}, expected "
                f"{architecture.elf_machine} ({architecture.value})"
            )
