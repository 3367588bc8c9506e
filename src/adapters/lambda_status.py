"""Canal de estado de la plataforma: `lambda:GetFunction` vía boto3."""

from __future__ import annotations

from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from core.domain.errors import ValidationWarning
from core.domain.models import FunctionStatus


class LambdaStatusSource:
    """Implementa `core.interfaces.probes.FunctionStatusSource`."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def get_function_status(self, function_name: str) -> FunctionStatus:
        try:
            response = self._client.get_function(FunctionName=function_name)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "Unknown")
            raise ValidationWarning(f"get_function({function_name}) failed: {code}") from exc
        except BotoCoreError as exc:
            raise ValidationWarning(f"get_function({function_name}) failed: {exc}") from exc

        config = response.get("Configuration") or {}
        architectures = config.get("Architectures") or []
        return FunctionStatus(
            function_name=config.get("FunctionName", function_name),
            state=config.get("State"),
            architecture=architectures[0] if architectures else None,
            runtime=config.get("Runtime"),
            memory_size=config.get("MemorySize"),
            timeout=config.get("Timeout"),
            code_size=config.get("CodeSize"),
        )
