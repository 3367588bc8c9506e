"""Deploy stage: submit template + bundle + parameters and collect outputs."""

from __future__ import annotations

import logging

from core.config import AppSettings
from core.domain.errors import DeployError
from core.domain.models import (
    DeploymentBundle,
    DeploymentOutputs,
    ReconcileAction,
    RemoteStack,
    StackDescriptor,
    StackState,
)
from core.interfaces.orchestrator import StackOrchestrator
from core.services.reconciler import classify_status

logger = logging.getLogger(__name__)


class Deployer:
    def __init__(self, *, settings: AppSettings, orchestrator: StackOrchestrator) -> None:
        self._settings = settings
        self._orchestrator = orchestrator

    def tags(self, descriptor: StackDescriptor, bundle: DeploymentBundle) -> dict[str, str]:
        return {
            "Environment": descriptor.environment.value,
            "Project": self._settings.project_tag,
            "Architecture": bundle.artifact.architecture.value,
        }

    def deploy(
        self,
        descriptor: StackDescriptor,
        action: ReconcileAction,
        bundle: DeploymentBundle,
        *,
        template_file: str,
    ) -> tuple[StackDescriptor, DeploymentOutputs]:
        if descriptor.state is StackState.POISONED:
            # The reconciler must have cleared it first.
            raise DeployError(f"Refusing to update poisoned stack {descriptor.stack_name} in place")
        if not bundle.archive_path.is_file():
            raise DeployError(f"Bundle missing: {bundle.archive_path}")

        parameters = {**descriptor.parameters, "Environment": descriptor.environment.value}

        logger.info("Validating template %s", template_file)
        self._orchestrator.validate_template(template_file)

        logger.info("Deploying %s (%s) to %s", descriptor.stack_name, action.value, descriptor.region)
        self._orchestrator.deploy(
            template_file=template_file,
            stack_name=descriptor.stack_name,
            parameters=parameters,
            tags=self.tags(descriptor, bundle),
        )

        remote = self._orchestrator.describe_stack(descriptor.stack_name)
        status = remote.status if remote else None
        state = classify_status(status)
        if state is not StackState.HEALTHY:
            raise DeployError(
                f"Stack {descriptor.stack_name} finished in {status or 'no stack'}"
                + (f": {remote.status_reason}" if remote and remote.status_reason else "")
            )

        outputs = outputs_from_remote(remote, self._settings)
        deployed = descriptor.model_copy(
            update={
                "status": status,
                "state": state,
                "parameters": parameters,
                "remote_parameters": dict(remote.parameters) if remote else {},
            }
        )
        logger.info("Stack %s is %s with %d output(s)", descriptor.stack_name, status, len(outputs.values))
        return deployed, outputs


def outputs_from_remote(remote: RemoteStack | None, settings: AppSettings) -> DeploymentOutputs:
    """Named outputs of a stack; empty when it does not exist."""

    return DeploymentOutputs(
        values=dict(remote.outputs) if remote else {},
        endpoint_key=settings.endpoint_output_key,
        api_key=settings.api_output_key,
        function_key=settings.function_output_key,
    )
