"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts y headers para todos los probes.
- Facilita testeo: se puede inyectar un `httpx.MockTransport`.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any

import httpx

from core.config import AppSettings
from core.domain.errors import ProtocolError
from core.domain.protocol import RpcRequest, RpcResponse, decode_response

logger = logging.getLogger(__name__)


def build_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Crea un `httpx.Client` con defaults seguros."""

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json, text/event-stream",
        "Content-Type": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.Client(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


class JsonRpcHttpClient:
    """Implementa `core.interfaces.probes.ProtocolClient` sobre HTTP POST.

    Cada request lleva `jsonrpc`, un `id` incremental y el método con sus
    parámetros; la respuesta se decodifica a `RpcResult` | `RpcError`.
    """

    def __init__(self, endpoint: str, client: httpx.Client) -> None:
        self._endpoint = endpoint
        self._client = client
        self._ids = itertools.count(1)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def call(self, method: str, params: dict[str, Any] | None = None) -> RpcResponse:
        request = RpcRequest(id=next(self._ids), method=method, params=params or {})
        logger.debug("POST %s %s (id=%s)", self._endpoint, method, request.id)
        try:
            response = self._client.post(self._endpoint, json=request.model_dump())
        except httpx.HTTPError as exc:
            raise ProtocolError(f"{method}: transport error: {exc}") from exc

        if response.status_code >= 400 and not response.content:
            raise ProtocolError(f"{method}: HTTP {response.status_code} with empty body")
        try:
            return decode_response(response.content)
        except ProtocolError as exc:
            raise ProtocolError(f"{method}: HTTP {response.status_code}: {exc}") from exc

    def close(self) -> None:
        self._client.close()
