"""Copia profunda de estructuras de datos."""

from __future__ import annotations

import copy
from datetime import date, datetime, time
from typing import TypeVar

from pydantic import BaseModel

T = TypeVar("T")

_IMMUTABLE = (str, bytes, int, float, complex, bool, type(None), datetime, date, time)


def deep_clone(obj: T) -> T:
    """Copia recursiva de dict/list/tuple/set y modelos pydantic.

    Los valores inmutables (números, strings, fechas) se devuelven tal cual;
    cualquier otro objeto pasa por `copy.deepcopy`.
    """

    if isinstance(obj, _IMMUTABLE):
        return obj
    if isinstance(obj, BaseModel):
        return obj.model_copy(deep=True)  # type: ignore[return-value]
    if isinstance(obj, dict):
        return {key: deep_clone(value) for key, value in obj.items()}  # type: ignore[return-value]
    if isinstance(obj, list):
        return [deep_clone(item) for item in obj]  # type: ignore[return-value]
    if isinstance(obj, tuple):
        return tuple(deep_clone(item) for item in obj)  # type: ignore[return-value]
    if isinstance(obj, set):
        return {deep_clone(item) for item in obj}  # type: ignore[return-value]
    return copy.deepcopy(obj)
