"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Validación estricta de lo que devuelve la API y documentación autocontenida (Field).
- Los alias camelCase viven aquí; el resto del código usa snake_case.

Nota:
- Estos modelos describen *qué* es un usuario, no *cómo* se obtiene.
- La validación de pre-flight (campos requeridos, email, password) NO vive
  aquí: la hace `UserService` y lanza `ValidationFault`.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class User(BaseModel):
    """Registro de usuario tal como lo devuelve la API remota."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(..., min_length=1, description="Identificador remoto.")
    username: str = Field(..., description="Handle único.")
    email: str = Field(..., description="Correo del usuario.")
    full_name: str = Field(..., alias="fullName", description="Nombre visible.")
    avatar: str | None = Field(default=None, description="URL del avatar, si existe.")
    is_active: bool = Field(default=True, alias="isActive")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")


class PaginationParams(BaseModel):
    """Paginación y orden. Los campos a None no pisan los defaults."""

    model_config = ConfigDict(populate_by_name=True)

    page: int | None = Field(default=None, ge=1)
    limit: int | None = Field(default=None, ge=1, le=100)
    sort_by: str | None = Field(default=None, alias="sortBy")
    sort_order: SortOrder | None = Field(default=None, alias="sortOrder")

    def merged_with(self, other: PaginationParams | None) -> PaginationParams:
        """Devuelve una copia con los campos no-None de `other` aplicados encima."""

        if other is None:
            return self.model_copy()
        overrides = {
            name: getattr(other, name)
            for name in PaginationParams.model_fields
            if getattr(other, name) is not None
        }
        return self.model_copy(update=overrides)


class DateRange(BaseModel):
    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _ordered(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError("date range start must not be after its end")
        return self


class FilterParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    search: str | None = None
    date_range: DateRange | None = Field(default=None, alias="dateRange")
    category: str | None = None
    status: UserStatus | None = None


class UserSearchOptions(PaginationParams, FilterParams):
    """Opciones completas de listado: paginación + filtros + rango de alta."""

    role: str | None = None
    created_after: datetime | None = Field(default=None, alias="createdAfter")
    created_before: datetime | None = Field(default=None, alias="createdBefore")


class CreateUserData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = ""
    email: str = ""
    full_name: str = Field(default="", alias="fullName")
    password: str = Field(default="", repr=False)
    avatar: str | None = None


class UpdateUserData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str | None = None
    email: str | None = None
    full_name: str | None = Field(default=None, alias="fullName")
    avatar: str | None = None
    is_active: bool | None = Field(default=None, alias="isActive")

    def payload(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


class BulkUpdateResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    updated: int = Field(default=0, ge=0)
    failed: list[str] = Field(default_factory=list)


class DeleteResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    deleted: bool = False


class UserStats(BaseModel):
    """Agregados de usuarios (endpoint `/stats`)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total: int = 0
    active: int = 0
    inactive: int = 0
    suspended: int = 0
    new_this_month: int | None = Field(default=None, alias="newThisMonth")
    new_this_year: int | None = Field(default=None, alias="newThisYear")
    growth_rate: float | None = Field(default=None, alias="growthRate")


class UserValidationReport(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
