"""Stack lifecycle reconciliation.

Decides, from the live remote status, what the deploy stage may safely do:

    ABSENT   -> create
    HEALTHY  -> update
    POISONED -> delete, wait for the delete to finish, then create
    OTHER    -> abort with the raw status

A poisoned stack (ROLLBACK_COMPLETE and friends) rejects in-place updates, so
it is never updated. This is what makes a rerun safe after any previous
outcome.
"""

from __future__ import annotations

import logging

from core.domain.errors import StackStateError
from core.domain.models import (
    Environment,
    ReconcileAction,
    RemoteStack,
    StackDescriptor,
    StackState,
)
from core.interfaces.orchestrator import StackOrchestrator

logger = logging.getLogger(__name__)

ABSENT_STATUSES: frozenset[str] = frozenset({"DELETE_COMPLETE"})

HEALTHY_STATUSES: frozenset[str] = frozenset(
    {
        "CREATE_COMPLETE",
        "UPDATE_COMPLETE",
        "UPDATE_ROLLBACK_COMPLETE",
        "IMPORT_COMPLETE",
        "IMPORT_ROLLBACK_COMPLETE",
    }
)

POISONED_STATUSES: frozenset[str] = frozenset({"ROLLBACK_COMPLETE", "ROLLBACK_FAILED"})


def classify_status(status: str | None) -> StackState:
    if status is None or status in ABSENT_STATUSES:
        return StackState.ABSENT
    if status in HEALTHY_STATUSES:
        return StackState.HEALTHY
    if status in POISONED_STATUSES:
        return StackState.POISONED
    return StackState.OTHER


def plan_action(descriptor: StackDescriptor) -> ReconcileAction:
    """Pure transition function of the state machine."""

    if descriptor.state is StackState.ABSENT:
        return ReconcileAction.CREATE
    if descriptor.state is StackState.HEALTHY:
        return ReconcileAction.UPDATE
    if descriptor.state is StackState.POISONED:
        return ReconcileAction.RECREATE
    raise StackStateError(descriptor.stack_name, descriptor.status)


class StackReconciler:
    def __init__(self, orchestrator: StackOrchestrator) -> None:
        self._orchestrator = orchestrator

    def describe(
        self,
        *,
        stack_name: str,
        environment: Environment,
        region: str,
        parameters: dict[str, str] | None = None,
    ) -> StackDescriptor:
        """Fetch the stack fresh from the orchestration service."""

        remote = self._orchestrator.describe_stack(stack_name)
        return to_descriptor(
            remote,
            stack_name=stack_name,
            environment=environment,
            region=region,
            parameters=parameters,
        )

    def reconcile(self, descriptor: StackDescriptor) -> tuple[ReconcileAction, StackDescriptor]:
        """Bring the stack into a state the deployer can act on.

        Returns the action the deployer should report and the descriptor it
        should deploy against. For RECREATE the delete has already completed
        when this returns.
        """

        action = plan_action(descriptor)
        logger.info(
            "Stack %s is %s (%s); action: %s",
            descriptor.stack_name,
            descriptor.state.value,
            descriptor.status or "does not exist",
            action.value,
        )
        if action is not ReconcileAction.RECREATE:
            return action, descriptor

        logger.warning("Stack %s is in %s; deleting before recreate", descriptor.stack_name, descriptor.status)
        self._orchestrator.delete_stack(descriptor.stack_name)
        final_status = self._orchestrator.wait_for_delete(descriptor.stack_name)
        if classify_status(final_status) is not StackState.ABSENT:
            raise StackStateError(descriptor.stack_name, final_status)

        logger.info("Stack %s deleted", descriptor.stack_name)
        cleared = descriptor.model_copy(update={"status": None, "state": StackState.ABSENT, "remote_parameters": {}})
        return action, cleared


def to_descriptor(
    remote: RemoteStack | None,
    *,
    stack_name: str,
    environment: Environment,
    region: str,
    parameters: dict[str, str] | None,
) -> StackDescriptor:
    status = remote.status if remote else None
    return StackDescriptor(
        stack_name=stack_name,
        environment=environment,
        region=region,
        parameters=dict(parameters or {}),
        remote_parameters=dict(remote.parameters) if remote else {},
        status=status,
        state=classify_status(status),
    )
