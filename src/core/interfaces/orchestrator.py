"""Contrato del servicio de orquestación de stacks.

Reglas de diseño:
- Todas las operaciones son bloqueantes.
- `describe_stack` devuelve None si el stack no existe; nunca cachea.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import RemoteStack


@runtime_checkable
class StackOrchestrator(Protocol):
    def describe_stack(self, stack_name: str) -> RemoteStack | None:
        ...

    def delete_stack(self, stack_name: str) -> None:
        ...

    def wait_for_delete(self, stack_name: str) -> str | None:
        """Bloquea hasta que el borrado sea terminal.

        Devuelve el estado final crudo, o None si el stack ya no existe.
        """

        ...

    def validate_template(self, template_file: str) -> None:
        ...

    def deploy(
        self,
        *,
        template_file: str,
        stack_name: str,
        parameters: dict[str, str],
        tags: dict[str, str],
    ) -> None:
        """Crea o actualiza el stack y bloquea hasta un estado terminal.

        Un despliegue sin cambios debe terminar sin error.
        """

        ...
