"""Contratos consumidos por el Validator."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from core.domain.models import FunctionStatus
from core.domain.protocol import RpcResponse


@runtime_checkable
class ProtocolClient(Protocol):
    """Intercambio request/response JSON-RPC contra el endpoint desplegado."""

    def call(self, method: str, params: dict[str, Any] | None = None) -> RpcResponse:
        ...

    def close(self) -> None:
        """Libera la conexión subyacente."""

        ...


@runtime_checkable
class FunctionStatusSource(Protocol):
    """Canal de estado de la plataforma (fuera del protocolo de la aplicación)."""

    def get_function_status(self, function_name: str) -> FunctionStatus:
        ...
