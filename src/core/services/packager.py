"""Bundle stage: wrap the artifact the way the Lambda custom runtime expects."""

from __future__ import annotations

import logging
import shutil
import zipfile
from pathlib import Path

from core.domain.errors import BuildError
from core.domain.models import BuildArtifact, DeploymentBundle

logger = logging.getLogger(__name__)

# The provided.* runtimes only ever execute an entry with this exact name.
BUNDLE_ENTRY_NAME = "bootstrap"

STAGING_DIR = Path("target") / "lambda" / BUNDLE_ENTRY_NAME


class Packager:
    def staging_dir(self, source_dir: Path) -> Path:
        return source_dir / STAGING_DIR

    def package(self, artifact: BuildArtifact, source_dir: Path) -> DeploymentBundle:
        staging = self.staging_dir(source_dir)
        executable = staging / BUNDLE_ENTRY_NAME
        archive = staging / f"{BUNDLE_ENTRY_NAME}.zip"

        try:
            staging.mkdir(parents=True, exist_ok=True)
            shutil.copy2(artifact.path, executable)
            executable.chmod(0o755)
            _write_archive(executable, archive)
        except OSError as exc:
            raise BuildError(f"Packaging failed: {exc}") from exc

        logger.info("Bundle staged at %s", archive)
        return DeploymentBundle(
            artifact=artifact,
            executable_path=executable,
            archive_path=archive,
            entry_name=BUNDLE_ENTRY_NAME,
        )


def _write_archive(executable: Path, archive: Path) -> None:
    info = zipfile.ZipInfo(BUNDLE_ENTRY_NAME)
    info.compress_type = zipfile.ZIP_DEFLATED
    # rwxr-xr-x, regular file
    info.external_attr = (0o100755 & 0xFFFF) << 16
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr(info, executable.read_bytes())
