"""Jerarquía de errores tipados de userdesk.

Invariantes:
- Todo error tiene `code` (str) y `http_status` (int).
- Los `ValidationFault` se lanzan antes de cualquier llamada de red.
- Los fallos de red NO son excepciones: el pipeline los convierte en un
  `ApiResponse` de fallo (ver `core.domain.envelope`).
"""

from __future__ import annotations

from typing import Any


class UserDeskError(Exception):
    """Base de todas las excepciones propias."""

    def __init__(self, message: str, code: str, http_status: int = 500) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.http_status = http_status

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "status_code": self.http_status}


class ValidationFault(UserDeskError):
    """Pre-flight validation failed on the client side."""

    def __init__(
        self,
        message: str,
        *,
        errors: list[str] | None = None,
        field: str | None = None,
    ) -> None:
        super().__init__(message, "VALIDATION_ERROR", 400)
        self.errors = errors or [message]
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["errors"] = list(self.errors)
        if self.field:
            data["field"] = self.field
        return data


class ConfigurationError(UserDeskError):
    """The API client cannot be built from the given configuration."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "CONFIGURATION_ERROR", 500)
