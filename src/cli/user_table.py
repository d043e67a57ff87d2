"""User listing controller: pagination, filters, search and selection state.

This module holds the presentational state machine behind the users table.
It never renders anything itself (see `cli.ui_components`) and never talks
to httpx directly: it drives any `UserDirectory` and folds both error
channels (returned failure envelopes and raised `ValidationFault`) into a
single `error` field.

Load states::

    idle -> loading -> loaded | error
    loaded/error -> loading   (search, filter, pagination, retry, post-mutation reload)

Every load takes a monotonically increasing token. Only the result of the
most recently issued load is committed; earlier loads that resolve later are
discarded instead of overwriting newer data.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

from core.domain.envelope import ApiResponse
from core.domain.models import (
    FilterParams,
    PaginationParams,
    SortOrder,
    UpdateUserData,
    User,
    UserSearchOptions,
    UserStats,
)
from core.errors import ValidationFault
from core.interfaces.directory import UserDirectory
from core.services.user_service import DEFAULT_PAGINATION
from core.utils.cloning import deep_clone

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "Are you sure you want to delete this user? This action cannot be undone."


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass
class TableHooks:
    """Optional callbacks for the hosting UI (prompts, notifications)."""

    confirm: Callable[[str], bool | Awaitable[bool]] | None = None
    on_users_update: Callable[[list[User]], None] | None = None
    on_error: Callable[[str], None] | None = None
    on_user_select: Callable[[User], None] | None = None


@dataclass
class TableState:
    """Snapshot of everything the table view needs to render."""

    users: list[User] = field(default_factory=list)
    pagination: PaginationParams = field(default_factory=lambda: DEFAULT_PAGINATION.model_copy())
    filters: FilterParams = field(default_factory=FilterParams)
    search_query: str = ""
    load_state: LoadState = LoadState.IDLE
    error: str | None = None
    selected_ids: list[str] = field(default_factory=list)
    stats: UserStats | None = None
    total: int | None = None

    @property
    def loading(self) -> bool:
        return self.load_state is LoadState.LOADING


class UserTableController:
    """Drives a `UserDirectory` from user-facing table interactions."""

    def __init__(
        self,
        directory: UserDirectory,
        *,
        pagination: PaginationParams | None = None,
        filters: FilterParams | None = None,
        show_stats: bool = True,
        hooks: TableHooks | None = None,
    ) -> None:
        self._directory = directory
        self._show_stats = show_stats
        self._hooks = hooks or TableHooks()
        self._load_token = 0
        self.state = TableState(
            pagination=DEFAULT_PAGINATION.merged_with(pagination),
            filters=deep_clone(filters) if filters is not None else FilterParams(),
        )

    # -- derived values ------------------------------------------------------

    @property
    def page(self) -> int:
        return self.state.pagination.page or 1

    @property
    def limit(self) -> int:
        return self.state.pagination.limit or DEFAULT_PAGINATION.limit or 20

    @property
    def has_selection(self) -> bool:
        return bool(self.state.selected_ids)

    @property
    def all_selected(self) -> bool:
        users = self.state.users
        return bool(users) and len(self.state.selected_ids) == len(users)

    @property
    def has_previous_page(self) -> bool:
        return self.page > 1

    @property
    def has_next_page(self) -> bool:
        # A short page means there is nothing after it.
        return len(self.state.users) >= self.limit

    @property
    def showing_range(self) -> tuple[int, int]:
        """1-based (first, last) row numbers for the current page."""

        if not self.state.users:
            return (0, 0)
        first = (self.page - 1) * self.limit + 1
        return (first, first + len(self.state.users) - 1)

    def is_selected(self, user_id: str) -> bool:
        return user_id in self.state.selected_ids

    def build_search_options(self) -> UserSearchOptions:
        pagination = self.state.pagination
        filters = self.state.filters
        return UserSearchOptions(
            page=pagination.page,
            limit=pagination.limit,
            sort_by=pagination.sort_by,
            sort_order=pagination.sort_order,
            search=self.state.search_query or filters.search or None,
            date_range=filters.date_range,
            category=filters.category,
            status=filters.status,
        )

    # -- loading -------------------------------------------------------------

    async def mount(self) -> None:
        await self.load_users()
        await self.load_stats()

    async def load_users(self) -> bool:
        """Fetch the current page. Returns True when this load was committed successfully."""

        self._load_token += 1
        token = self._load_token
        self.state.load_state = LoadState.LOADING
        self.state.error = None

        try:
            response = await self._directory.get_users(self.build_search_options())
        except ValidationFault as exc:
            response = ApiResponse.from_validation_fault(exc)

        if token != self._load_token:
            logger.debug("Discarding stale user load (token %d, latest %d)", token, self._load_token)
            return False

        if response.success:
            users = list(response.data or [])
            present = {user.id for user in users}
            self.state.users = users
            self.state.total = response.meta.total if response.meta else None
            self.state.selected_ids = [uid for uid in self.state.selected_ids if uid in present]
            self.state.load_state = LoadState.LOADED
            if self._hooks.on_users_update:
                self._hooks.on_users_update(users)
            return True

        self._fail(response.error or "Failed to load users")
        return False

    async def load_stats(self) -> None:
        if not self._show_stats:
            return
        response = await self._directory.get_user_stats()
        if not response.success:
            logger.warning("Failed to load user statistics: %s", response.error)
        elif response.data is not None:
            self.state.stats = response.data

    async def retry(self) -> bool:
        return await self.load_users()

    def dismiss_error(self) -> None:
        self.state.error = None
        if self.state.load_state is LoadState.ERROR:
            self.state.load_state = LoadState.LOADED if self.state.users else LoadState.IDLE

    def _fail(self, message: str) -> None:
        # Prior rows stay visible; only the error and state change.
        self.state.error = message
        self.state.load_state = LoadState.ERROR
        if self._hooks.on_error:
            self._hooks.on_error(message)

    # -- search / filters / pagination ---------------------------------------

    async def search(self, query: str) -> bool:
        self.state.search_query = query.strip()
        self.state.pagination = self.state.pagination.model_copy(update={"page": 1})
        return await self.load_users()

    async def set_filters(self, **changes: Any) -> bool:
        current = self.state.filters.model_dump()
        current.update(changes)
        self.state.filters = FilterParams.model_validate(current)
        self.state.pagination = self.state.pagination.model_copy(update={"page": 1})
        return await self.load_users()

    async def change_pagination(
        self,
        *,
        page: int | None = None,
        limit: int | None = None,
        sort_by: str | None = None,
        sort_order: SortOrder | str | None = None,
    ) -> bool:
        """Page navigation keeps the page; limit or sort changes restart from page 1."""

        update: dict[str, Any] = {}
        if limit is not None:
            update["limit"] = limit
        if sort_by is not None:
            update["sort_by"] = sort_by
        if sort_order is not None:
            update["sort_order"] = SortOrder(sort_order)
        if update:
            update["page"] = 1
        if page is not None:
            update["page"] = max(1, page)

        merged = self.state.pagination.model_dump()
        merged.update(update)
        self.state.pagination = PaginationParams.model_validate(merged)
        return await self.load_users()

    async def next_page(self) -> bool:
        if not self.has_next_page:
            return False
        return await self.change_pagination(page=self.page + 1)

    async def previous_page(self) -> bool:
        if not self.has_previous_page:
            return False
        return await self.change_pagination(page=self.page - 1)

    # -- selection -----------------------------------------------------------

    def toggle_selection(self, user_id: str, selected: bool) -> None:
        ids = [uid for uid in self.state.selected_ids if uid != user_id]
        if selected:
            ids.append(user_id)
        self.state.selected_ids = ids

    def select_all(self, selected: bool) -> None:
        self.state.selected_ids = [user.id for user in self.state.users] if selected else []

    def clear_selection(self) -> None:
        self.state.selected_ids = []

    def select_user(self, user: User) -> None:
        if self._hooks.on_user_select:
            self._hooks.on_user_select(user)

    # -- mutations (always followed by a full reload) ------------------------

    async def bulk_update(self, update_data: UpdateUserData) -> bool:
        if not self.has_selection:
            return False

        self.state.load_state = LoadState.LOADING
        try:
            response = await self._directory.bulk_update_users(list(self.state.selected_ids), update_data)
        except ValidationFault as exc:
            response = ApiResponse.from_validation_fault(exc)

        if not response.success:
            self._fail(response.error or "Bulk update failed")
            return False

        await self.load_users()
        self.clear_selection()
        return True

    async def delete_user(self, user_id: str, force: bool = False) -> bool:
        confirm = self._hooks.confirm
        if confirm is not None:
            accepted = confirm(DELETE_CONFIRMATION)
            if inspect.isawaitable(accepted):
                accepted = await accepted
            if not accepted:
                return False

        self.state.load_state = LoadState.LOADING
        try:
            response = await self._directory.delete_user(user_id, force)
        except ValidationFault as exc:
            response = ApiResponse.from_validation_fault(exc)

        if not response.success:
            self._fail(response.error or "Failed to delete user")
            return False

        await self.load_users()
        self.toggle_selection(user_id, False)
        return True
