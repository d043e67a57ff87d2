"""Capa de servicios del recurso User.

Traduce intenciones de dominio (listar, obtener, crear, actualizar, borrar,
buscar, actualización masiva, estadísticas, validar) a llamadas del
`ApiClient`. Aquí vive la validación de pre-flight: si el input es
inválido se lanza `ValidationFault` *antes* de tocar la red.

Dos canales de error, a propósito distintos:
- `ValidationFault` (excepción síncrona): error del llamador.
- `ApiResponse(success=False)`: fallo operativo (red/servidor).
"""

from __future__ import annotations

import logging
from typing import Any, Sequence
from urllib.parse import quote

from adapters.http_client import ApiClient
from core.domain.envelope import ApiResponse
from core.domain.models import (
    BulkUpdateResult,
    CreateUserData,
    DateRange,
    DeleteResult,
    PaginationParams,
    SortOrder,
    UpdateUserData,
    User,
    UserSearchOptions,
    UserStats,
    UserStatus,
    UserValidationReport,
)
from core.errors import ValidationFault
from core.utils.formatting import to_iso_timestamp
from core.utils.validation import EMAIL_RE

logger = logging.getLogger(__name__)

DEFAULT_PAGINATION = PaginationParams(
    page=1,
    limit=20,
    sort_by="createdAt",
    sort_order=SortOrder.DESC,
)

FORCE_DELETE_HEADER = "X-Force-Delete"
MIN_PASSWORD_LENGTH = 8
RECOMMENDED_PASSWORD_LENGTH = 12
MIN_USERNAME_LENGTH = 3


def _date_range_params(date_range: DateRange | None) -> dict[str, str]:
    if date_range is None:
        return {}
    return {
        "startDate": to_iso_timestamp(date_range.start),
        "endDate": to_iso_timestamp(date_range.end),
    }


class UserService:
    """Fachada CRUD sobre el endpoint de usuarios."""

    def __init__(
        self,
        api: ApiClient,
        *,
        base_endpoint: str = "/users",
        default_pagination: PaginationParams | None = None,
    ) -> None:
        self._api = api
        self._base = "/" + base_endpoint.strip("/")
        self._defaults = DEFAULT_PAGINATION.merged_with(default_pagination)

    @property
    def default_pagination(self) -> PaginationParams:
        return self._defaults

    def _endpoint(self, *parts: str) -> str:
        suffix = "/".join(quote(part, safe="") for part in parts)
        return f"{self._base}/{suffix}" if suffix else self._base

    def _user_endpoint(self, user_id: str) -> str:
        if not user_id or not str(user_id).strip():
            raise ValidationFault("User ID is required", field="id")
        return self._endpoint(str(user_id))

    def build_list_params(self, options: UserSearchOptions | None = None) -> dict[str, Any]:
        """Query params de listado: defaults + overrides + filtros, fechas en texto ISO."""

        options = options or UserSearchOptions()
        pagination = self._defaults.merged_with(options)

        params: dict[str, Any] = {
            "page": pagination.page,
            "limit": pagination.limit,
            "sortBy": pagination.sort_by,
            "sortOrder": pagination.sort_order.value if pagination.sort_order else None,
            "search": options.search or None,
            "category": options.category,
            "status": options.status.value if options.status else None,
            "role": options.role,
        }
        params.update(_date_range_params(options.date_range))
        if options.created_after is not None:
            params["createdAfter"] = to_iso_timestamp(options.created_after)
        if options.created_before is not None:
            params["createdBefore"] = to_iso_timestamp(options.created_before)
        return {key: value for key, value in params.items() if value is not None}

    # -- lectura -------------------------------------------------------------

    async def get_users(self, options: UserSearchOptions | None = None) -> ApiResponse[list[User]]:
        return await self._api.get(
            self._base,
            self.build_list_params(options),
            response_model=list[User],
        )

    async def get_user_by_id(self, user_id: str, include_profile: bool = False) -> ApiResponse[User]:
        params = {"include": "profile"} if include_profile else None
        return await self._api.get(self._user_endpoint(user_id), params, response_model=User)

    async def search_users(
        self,
        search_term: str,
        options: UserSearchOptions | None = None,
    ) -> ApiResponse[list[User]]:
        options = (options or UserSearchOptions()).model_copy(update={"search": search_term})
        return await self.get_users(options)

    async def get_users_by_status(
        self,
        status: UserStatus,
        options: UserSearchOptions | None = None,
    ) -> ApiResponse[list[User]]:
        options = (options or UserSearchOptions()).model_copy(update={"status": UserStatus(status)})
        return await self.get_users(options)

    async def get_user_stats(self, date_range: DateRange | None = None) -> ApiResponse[UserStats]:
        return await self._api.get(
            self._endpoint("stats"),
            _date_range_params(date_range) or None,
            response_model=UserStats,
        )

    # -- escritura -----------------------------------------------------------

    async def create_user(self, user_data: CreateUserData) -> ApiResponse[User]:
        if not (user_data.username and user_data.email and user_data.full_name and user_data.password):
            raise ValidationFault("All required fields must be provided")
        if not EMAIL_RE.match(user_data.email):
            raise ValidationFault("Invalid email format", field="email")
        if len(user_data.password) < MIN_PASSWORD_LENGTH:
            raise ValidationFault(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
                field="password",
            )

        payload = user_data.model_dump(by_alias=True, exclude_none=True)
        return await self._api.post(self._base, payload, response_model=User)

    async def update_user(self, user_id: str, update_data: UpdateUserData) -> ApiResponse[User]:
        payload = update_data.payload()
        if not payload:
            raise ValidationFault("At least one field must be provided for update")
        if update_data.email is not None and not EMAIL_RE.match(update_data.email):
            raise ValidationFault("Invalid email format", field="email")

        return await self._api.patch(self._user_endpoint(user_id), payload, response_model=User)

    async def delete_user(self, user_id: str, force: bool = False) -> ApiResponse[DeleteResult]:
        headers = {FORCE_DELETE_HEADER: "true"} if force else None
        if force:
            logger.info("Force-deleting user %s (dependency checks overridden)", user_id)
        return await self._api.delete(
            self._user_endpoint(user_id),
            headers=headers,
            response_model=DeleteResult,
        )

    async def bulk_update_users(
        self,
        user_ids: Sequence[str],
        update_data: UpdateUserData,
    ) -> ApiResponse[BulkUpdateResult]:
        if not user_ids:
            raise ValidationFault("At least one user ID must be provided", field="userIds")

        payload = {"userIds": list(user_ids), "updateData": update_data.payload()}
        return await self._api.post(
            self._endpoint("bulk-update"),
            payload,
            response_model=BulkUpdateResult,
        )

    # -- validación local ----------------------------------------------------

    @staticmethod
    def validate_user_data(user_data: CreateUserData) -> UserValidationReport:
        """Valida sin red: errores bloqueantes + warnings (password corta pero válida)."""

        errors: list[str] = []
        warnings: list[str] = []

        if not user_data.username:
            errors.append("Username is required")
        if not user_data.email:
            errors.append("Email is required")
        if not user_data.full_name:
            errors.append("Full name is required")
        if not user_data.password:
            errors.append("Password is required")

        if user_data.email and not EMAIL_RE.match(user_data.email):
            errors.append("Invalid email format")
        if user_data.password and len(user_data.password) < MIN_PASSWORD_LENGTH:
            errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        if user_data.username and len(user_data.username) < MIN_USERNAME_LENGTH:
            errors.append(f"Username must be at least {MIN_USERNAME_LENGTH} characters long")

        if user_data.password and len(user_data.password) < RECOMMENDED_PASSWORD_LENGTH:
            warnings.append("Consider using a longer password for better security")

        return UserValidationReport(is_valid=not errors, errors=errors, warnings=warnings)
