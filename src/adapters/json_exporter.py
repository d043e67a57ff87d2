"""Exportación JSON de listados y envelopes.

Por qué JSON:
- Interoperabilidad con otras herramientas y pipelines (`jq`, scripts).
- Permite guardar el resultado exacto de una llamada (incluido el error).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from core.domain.envelope import ApiResponse


def envelope_to_payload(response: ApiResponse[Any]) -> dict[str, Any]:
    """Envelope como dict JSON-compatible, con alias camelCase y sin campos vacíos."""

    return response.model_dump(mode="json", by_alias=True, exclude_none=True)


def dumps(value: BaseModel | ApiResponse[Any] | list[Any] | dict[str, Any]) -> str:
    """Serializa con formato estable (indentado y claves ordenadas)."""

    if isinstance(value, ApiResponse):
        data: Any = envelope_to_payload(value)
    elif isinstance(value, BaseModel):
        data = value.model_dump(mode="json", by_alias=True)
    elif isinstance(value, list):
        data = [
            item.model_dump(mode="json", by_alias=True) if isinstance(item, BaseModel) else item
            for item in value
        ]
    else:
        data = value
    return json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True)


def export_json(value: BaseModel | ApiResponse[Any] | list[Any], *, output_path: Path) -> Path:
    """Escribe `value` como JSON UTF-8 en `output_path`."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(dumps(value) + "\n", encoding="utf-8")
    return output_path
