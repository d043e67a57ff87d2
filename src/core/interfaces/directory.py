"""Contrato del directorio de usuarios que consume la UI.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- El controlador de la tabla puede probarse con un fake en memoria sin
  levantar httpx ni un servidor.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from core.domain.envelope import ApiResponse
from core.domain.models import (
    BulkUpdateResult,
    DateRange,
    DeleteResult,
    UpdateUserData,
    User,
    UserSearchOptions,
    UserStats,
)


@runtime_checkable
class UserDirectory(Protocol):
    """Operaciones mínimas que necesita un listado de usuarios.

    Reglas de diseño:
    - Todo es asíncrono porque típicamente hará I/O (HTTP).
    - Los fallos operativos llegan como `ApiResponse` de fallo; los de
      pre-flight como `ValidationFault`.
    """

    async def get_users(self, options: UserSearchOptions | None = None) -> ApiResponse[list[User]]:
        ...

    async def get_user_stats(self, date_range: DateRange | None = None) -> ApiResponse[UserStats]:
        ...

    async def bulk_update_users(
        self, user_ids: Sequence[str], update_data: UpdateUserData
    ) -> ApiResponse[BulkUpdateResult]:
        ...

    async def delete_user(self, user_id: str, force: bool = False) -> ApiResponse[DeleteResult]:
        ...
