"""JSON-RPC 2.0 envelopes used by the validation probes.

A response is decoded once into either `RpcResult` or `RpcError`; probes read
named fields from there instead of searching the raw body.
"""

from __future__ import annotations

import json
from typing import Any, Union

from pydantic import BaseModel, Field, ValidationError
from pydantic.config import ConfigDict

from core.domain.errors import ProtocolError

JSONRPC_VERSION = "2.0"


class RpcRequest(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    id: int | str
    method: str = Field(..., min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)


class RpcErrorBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: int
    message: str = ""
    data: Any = None


class RpcResult(BaseModel):
    """Successful response. `result` is kept as a plain mapping."""

    model_config = ConfigDict(extra="ignore")

    id: int | str | None = None
    result: dict[str, Any]

    @property
    def server_name(self) -> str | None:
        return self._server_field("name")

    @property
    def server_version(self) -> str | None:
        return self._server_field("version")

    @property
    def protocol_version(self) -> str | None:
        return _scalar_field(self.result, "protocolVersion")

    @property
    def has_tools(self) -> bool:
        return isinstance(self.result.get("tools"), list)

    @property
    def tool_names(self) -> list[str]:
        tools = self.result.get("tools")
        if not isinstance(tools, list):
            return []
        names: list[str] = []
        for tool in tools:
            if isinstance(tool, dict) and isinstance(tool.get("name"), str):
                names.append(tool["name"])
        return names

    @property
    def text_content(self) -> str:
        """Concatenated `content[].text` of a tool result, or the whole result as JSON."""

        content = self.result.get("content")
        if isinstance(content, list):
            texts = [
                item["text"]
                for item in content
                if isinstance(item, dict) and isinstance(item.get("text"), str)
            ]
            if texts:
                return "\n".join(texts)
        return json.dumps(self.result, ensure_ascii=False)

    @property
    def is_tool_error(self) -> bool:
        return self.result.get("isError") is True

    def _server_field(self, key: str) -> str | None:
        """`serverInfo.<key>`, falling back to `result.<key>` field by field."""

        info = self.result.get("serverInfo")
        if isinstance(info, dict):
            value = _scalar_field(info, key)
            if value is not None:
                return value
        return _scalar_field(self.result, key)


class RpcError(BaseModel):
    """Error response."""

    model_config = ConfigDict(extra="ignore")

    id: int | str | None = None
    error: RpcErrorBody

    @property
    def message(self) -> str:
        return f"JSON-RPC error {self.error.code}: {self.error.message}"


RpcResponse = Union[RpcResult, RpcError]


def decode_response(payload: bytes | str | dict[str, Any]) -> RpcResponse:
    """Decode a JSON-RPC response body.

    Raises:
        ProtocolError: the body is not JSON, or carries neither a result object
            nor an error object.
    """

    if isinstance(payload, dict):
        data: Any = payload
    else:
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ProtocolError(f"Response is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ProtocolError(f"Response is not a JSON object: {type(data).__name__}")

    try:
        if "error" in data and data["error"] is not None:
            return RpcError.model_validate(data)
        if "result" in data:
            return RpcResult.model_validate(data)
    except ValidationError as exc:
        raise ProtocolError(f"Malformed JSON-RPC envelope: {exc.error_count()} error(s)") from exc

    raise ProtocolError("Response carries neither 'result' nor 'error'.")


def _scalar_field(data: dict[str, Any], key: str) -> str | None:
    """Scalar value as text ('' stays '', 2 becomes '2'); None when missing or nested."""

    value = data.get(key)
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, str):
        return value
    return str(value)
