"""Envelope de respuesta normalizado.

Por qué un modelo propio:
- Cada llamada del pipeline devuelve la misma forma, haya ido bien o mal.
- Los llamadores ramifican por `success` (o `kind`) en vez de capturar
  excepciones de transporte.

Invariante: exactamente uno de {data, error} tiene contenido significativo.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.errors import ValidationFault

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Symbolic classification of a failed call."""

    SERVER_ERROR = "SERVER_ERROR"
    NO_RESPONSE = "NO_RESPONSE"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class ResponseMeta(BaseModel):
    """Paginación extraída de los headers de respuesta (ausente = None, nunca 0)."""

    model_config = ConfigDict(frozen=True)

    total: int | None = None
    page: int | None = None
    limit: int | None = None
    total_pages: int | None = None


class ApiError(BaseModel):
    """Error clasificado antes de construir el envelope de fallo."""

    model_config = ConfigDict(frozen=True)

    message: str
    code: str
    status_code: int = 0
    details: Any = None


class ApiResponse(BaseModel, Generic[T]):
    """Resultado uniforme de una llamada al pipeline."""

    model_config = ConfigDict(frozen=True)

    success: bool
    data: T | None = None
    error: str | None = None
    status_code: int = Field(default=0, ge=0)
    code: str | None = None
    details: Any = None
    meta: ResponseMeta | None = None

    @model_validator(mode="after")
    def _exactly_one_outcome(self) -> "ApiResponse[T]":
        if self.success and self.error is not None:
            raise ValueError("successful responses cannot carry an error")
        if not self.success:
            if not self.error:
                raise ValueError("failed responses must carry an error message")
            if self.data is not None:
                raise ValueError("failed responses cannot carry data")
        return self

    @property
    def kind(self) -> Literal["ok", "validation", "operational"]:
        if self.success:
            return "ok"
        if self.code == ErrorCode.VALIDATION_ERROR.value:
            return "validation"
        return "operational"

    @classmethod
    def ok(cls, data: Any, *, status_code: int, meta: ResponseMeta | None = None) -> "ApiResponse[Any]":
        return cls(success=True, data=data, status_code=status_code, meta=meta)

    @classmethod
    def fail(cls, error: ApiError) -> "ApiResponse[Any]":
        return cls(
            success=False,
            error=error.message,
            status_code=error.status_code,
            code=error.code,
            details=error.details,
        )

    @classmethod
    def from_validation_fault(cls, fault: ValidationFault) -> "ApiResponse[Any]":
        """Pliega un fallo de pre-flight en el mismo canal que los fallos de red."""

        return cls.fail(
            ApiError(
                message=fault.message,
                code=ErrorCode.VALIDATION_ERROR.value,
                status_code=fault.http_status,
                details={"errors": list(fault.errors), "field": fault.field},
            )
        )
