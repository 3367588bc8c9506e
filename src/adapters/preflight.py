"""Preflight checks: tooling on PATH, docker daemon, AWS credentials."""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Any, Callable

from botocore.exceptions import BotoCoreError, ClientError

from adapters.process import CommandRunner, run_command
from core.domain.errors import PreconditionError

logger = logging.getLogger(__name__)

SAM_INSTALL_URL = (
    "https://docs.aws.amazon.com/serverless-application-model/latest/"
    "developerguide/install-sam-cli.html"
)


@dataclass
class CheckResult:
    name: str
    ok: bool
    detail: str


class ToolingPreflight:
    """Implementa `core.interfaces.preflight.PreflightChecker`."""

    def __init__(
        self,
        *,
        sts_client_factory: Callable[[], Any],
        runner: CommandRunner = run_command,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self._sts_client_factory = sts_client_factory
        self._run = runner
        self._which = which

    def check_all(self) -> list[CheckResult]:
        """Run every check and report, without raising (used by `doctor`)."""

        return [
            self._check_binary("sam", f"AWS SAM CLI not found; install it: {SAM_INSTALL_URL}"),
            self._check_binary("docker", "Docker not found; install Docker first."),
            self._check_docker_daemon(),
            self._check_credentials(),
        ]

    def verify(self) -> None:
        for check in self.check_all():
            if not check.ok:
                raise PreconditionError(f"{check.name}: {check.detail}")
            logger.debug("Preflight %s: %s", check.name, check.detail)
        logger.info("Prerequisites check passed")

    def _check_binary(self, name: str, missing: str) -> CheckResult:
        path = self._which(name)
        if path:
            return CheckResult(name=name, ok=True, detail=path)
        return CheckResult(name=name, ok=False, detail=missing)

    def _check_docker_daemon(self) -> CheckResult:
        try:
            result = self._run(["docker", "info"], timeout=30)
        except (FileNotFoundError, subprocess.TimeoutExpired) as exc:
            return CheckResult(name="docker daemon", ok=False, detail=f"docker info failed: {exc}")
        if result.ok:
            return CheckResult(name="docker daemon", ok=True, detail="running")
        return CheckResult(name="docker daemon", ok=False, detail="Docker daemon is not running.")

    def _check_credentials(self) -> CheckResult:
        try:
            identity = self._sts_client_factory().get_caller_identity()
        except (ClientError, BotoCoreError) as exc:
            return CheckResult(
                name="aws credentials",
                ok=False,
                detail=f"AWS credentials not configured ({exc}); run 'aws configure'.",
            )
        return CheckResult(name="aws credentials", ok=True, detail=str(identity.get("Arn", "ok")))
