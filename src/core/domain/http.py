"""Descriptores de petición y política de reintentos.

Por qué en el dominio:
- Describen *qué* llamada HTTP se quiere hacer, no *cómo* se ejecuta.
- El adaptador (`adapters.http_client`) los traduce a `httpx.Request`
  nuevos en cada intento.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HttpMethod(str, Enum):
    """HTTP methods supported by the client."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @property
    def is_read(self) -> bool:
        return self is HttpMethod.GET


class RetryPolicy(BaseModel):
    """Número de intentos y espera fija entre ellos.

    `attempts` cuenta el primer intento: `attempts=1` significa sin reintentos.
    """

    model_config = ConfigDict(frozen=True)

    attempts: int = Field(default=3, ge=1, description="Intentos totales (>= 1).")
    delay: float = Field(default=1.0, ge=0, description="Espera entre intentos (segundos).")


@dataclass(frozen=True)
class RequestDescriptor:
    """Parámetros completos de una llamada HTTP antes de ejecutarla.

    Reglas:
    - Los query params solo viajan en llamadas de lectura (GET).
    - El body solo viaja en llamadas de escritura; nunca ambos a la vez.
    """

    method: HttpMethod
    path: str
    body: Any = None
    params: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None
    retry: RetryPolicy | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.method, HttpMethod):
            object.__setattr__(self, "method", HttpMethod(str(self.method).upper()))
        if self.method.is_read and self.body is not None:
            raise ValueError(f"{self.method.value} requests cannot carry a body")
        if not self.method.is_read and self.params:
            raise ValueError(f"{self.method.value} requests cannot carry query parameters")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @classmethod
    def for_call(
        cls,
        method: HttpMethod | str,
        path: str,
        data: Any = None,
        *,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        retry: RetryPolicy | None = None,
    ) -> "RequestDescriptor":
        """Route `data` to query params (GET) or JSON body (everything else)."""

        method = method if isinstance(method, HttpMethod) else HttpMethod(method.upper())
        if method.is_read:
            return cls(
                method=method,
                path=path,
                params=dict(data) if data else None,
                headers=dict(headers or {}),
                timeout=timeout,
                retry=retry,
            )
        return cls(
            method=method,
            path=path,
            body=data,
            headers=dict(headers or {}),
            timeout=timeout,
            retry=retry,
        )
