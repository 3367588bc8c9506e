"""Error taxonomy for the deployment pipeline.

Every fatal error carries the process exit code the CLI should use. Stages up
to and including deploy raise these and stop the run; probes raise
`ValidationWarning`, which the harness records instead of propagating.
"""

from __future__ import annotations


class DeploymentError(Exception):
    """Base class for fatal pipeline errors."""

    exit_code: int = 1
    stage: str = "pipeline"


class PreconditionError(DeploymentError):
    """Missing tooling or credentials, detected before any mutation."""

    exit_code = 2
    stage = "preflight"


class BuildError(DeploymentError):
    """Compilation, artifact extraction or packaging failed."""

    exit_code = 3
    stage = "build"


class StackStateError(DeploymentError):
    """The remote stack reported a status the reconciler will not act on."""

    exit_code = 4
    stage = "reconcile"

    def __init__(self, stack_name: str, status: str | None) -> None:
        self.stack_name = stack_name
        self.status = status
        super().__init__(f"Stack {stack_name!r} is in status {status}; refusing to guess an action.")


class DeployError(DeploymentError):
    """The orchestration service rejected or failed the deploy."""

    exit_code = 5
    stage = "deploy"


class ValidationWarning(Exception):
    """A single probe failed. Never fatal."""


class ProtocolError(ValidationWarning):
    """The endpoint answered with something that is not a JSON-RPC response."""
