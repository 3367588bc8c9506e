from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PreflightChecker(Protocol):
    """Verifica herramientas y credenciales antes de cualquier mutación."""

    def verify(self) -> None:
        """Lanza `PreconditionError` si falta algo."""

        ...
