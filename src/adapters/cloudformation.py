"""Adaptador del servicio de orquestación (CloudFormation + AWS SAM CLI).

Responsabilidad:
- describe / delete / wait vía boto3 (consultas estructuradas, sin parsear texto).
- validate / deploy vía `sam`, que empaqueta el bundle (S3) y aplica el changeset.

Las esperas son acotadas: el waiter usa `wait_delay_seconds` x
`wait_max_attempts` y `sam deploy` corre con `deploy_timeout_seconds`.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from adapters.process import CommandResult, CommandRunner, run_command
from core.config import AppSettings
from core.domain.errors import DeployError
from core.domain.models import RemoteStack

logger = logging.getLogger(__name__)


def _is_missing_stack(exc: ClientError) -> bool:
    error = exc.response.get("Error", {})
    return error.get("Code") == "ValidationError" and "does not exist" in str(error.get("Message", ""))


class CloudFormationOrchestrator:
    """Implementa `core.interfaces.orchestrator.StackOrchestrator`."""

    def __init__(
        self,
        *,
        settings: AppSettings,
        client: Any,
        region: str,
        runner: CommandRunner = run_command,
        sam: str = "sam",
    ) -> None:
        self._settings = settings
        self._client = client
        self._region = region
        self._run = runner
        self._sam = sam

    def describe_stack(self, stack_name: str) -> RemoteStack | None:
        try:
            response = self._client.describe_stacks(StackName=stack_name)
        except ClientError as exc:
            if _is_missing_stack(exc):
                return None
            raise DeployError(f"describe_stacks failed for {stack_name}: {exc}") from exc
        except BotoCoreError as exc:
            raise DeployError(f"describe_stacks failed for {stack_name}: {exc}") from exc

        stacks = response.get("Stacks") or []
        if not stacks:
            return None
        stack = stacks[0]
        return RemoteStack(
            name=stack.get("StackName", stack_name),
            status=stack["StackStatus"],
            status_reason=stack.get("StackStatusReason"),
            outputs={
                o["OutputKey"]: o.get("OutputValue", "")
                for o in stack.get("Outputs") or []
                if "OutputKey" in o
            },
            parameters={
                p["ParameterKey"]: p.get("ParameterValue", "")
                for p in stack.get("Parameters") or []
                if "ParameterKey" in p
            },
        )

    def delete_stack(self, stack_name: str) -> None:
        try:
            self._client.delete_stack(StackName=stack_name)
        except (ClientError, BotoCoreError) as exc:
            raise DeployError(f"delete_stack failed for {stack_name}: {exc}") from exc

    def wait_for_delete(self, stack_name: str) -> str | None:
        waiter = self._client.get_waiter("stack_delete_complete")
        logger.info(
            "Waiting for %s deletion (every %ss, at most %d checks)",
            stack_name,
            self._settings.wait_delay_seconds,
            self._settings.wait_max_attempts,
        )
        try:
            waiter.wait(
                StackName=stack_name,
                WaiterConfig={
                    "Delay": self._settings.wait_delay_seconds,
                    "MaxAttempts": self._settings.wait_max_attempts,
                },
            )
        except WaiterError as exc:
            remote = self.describe_stack(stack_name)
            if remote is None:
                return None
            if "Max attempts exceeded" in str(exc):
                raise DeployError(
                    f"Gave up waiting for {stack_name} deletion; last status {remote.status}"
                ) from exc
            return remote.status
        remote = self.describe_stack(stack_name)
        return remote.status if remote else None

    def validate_template(self, template_file: str) -> None:
        result = self._sam_call(
            [self._sam, "validate", "--template-file", template_file, "--region", self._region],
            timeout=300,
        )
        if not result.ok:
            raise DeployError(f"Template validation failed: {result.tail()}")

    def deploy(
        self,
        *,
        template_file: str,
        stack_name: str,
        parameters: dict[str, str],
        tags: dict[str, str],
    ) -> None:
        args = [
            self._sam,
            "deploy",
            "--template-file",
            template_file,
            "--stack-name",
            stack_name,
            "--capabilities",
            "CAPABILITY_NAMED_IAM",
            "--region",
            self._region,
        ]
        if parameters:
            args += ["--parameter-overrides", *[f"{k}={v}" for k, v in parameters.items()]]
        if tags:
            args += ["--tags", *[f"{k}={v}" for k, v in tags.items()]]
        args += ["--no-confirm-changeset", "--no-fail-on-empty-changeset", "--resolve-s3"]

        result = self._sam_call(args, timeout=self._settings.deploy_timeout_seconds, stream=True)
        if not result.ok:
            raise DeployError(f"sam deploy failed for {stack_name} (exit {result.returncode})\n{result.tail()}".rstrip())

    def _sam_call(self, args: list[str], *, timeout: float, stream: bool = False) -> CommandResult:
        try:
            return self._run(args, timeout=timeout, stream=stream)
        except FileNotFoundError as exc:
            raise DeployError(f"{self._sam} executable not found") from exc
        except subprocess.TimeoutExpired as exc:
            raise DeployError(f"{args[1]} did not finish within {timeout:.0f}s") from exc
