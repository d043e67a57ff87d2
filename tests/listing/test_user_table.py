"""UserTableController: load lifecycle, pagination, selection and mutations.

Invariants:
    - Only the most recently issued load commits; stale results are discarded
    - A failed load keeps the previously loaded rows and exposes the error verbatim
    - has_next_page is False when a page comes back shorter than the limit
    - Selection is filtered to the ids present after every reload
    - Bulk update and delete reload the list; bulk update clears the selection
    - ValidationFault from the directory lands in the same error field as
      operational failures

Design Decisions:
    - FakeDirectory implements the UserDirectory protocol in memory; gates
      (asyncio.Event) let a test resolve overlapping loads out of order
"""

import asyncio
import logging

from core.domain.envelope import ApiError, ApiResponse, ErrorCode
from core.domain.models import (
    BulkUpdateResult,
    DeleteResult,
    FilterParams,
    PaginationParams,
    UpdateUserData,
    User,
    UserStats,
    UserStatus,
)
from core.errors import ValidationFault
from core.interfaces.directory import UserDirectory
from cli.user_table import DELETE_CONFIRMATION, LoadState, TableHooks, UserTableController

from helpers import user_payload


def _users(*ids: str) -> list[User]:
    return [User.model_validate(user_payload(uid)) for uid in ids]


def _failure(message: str, status_code: int = 500) -> ApiResponse:
    return ApiResponse.fail(ApiError(message=message, code=ErrorCode.SERVER_ERROR.value, status_code=status_code))


class FakeDirectory:
    """In-memory UserDirectory with scripted responses."""

    def __init__(self, pages: list[ApiResponse] | None = None) -> None:
        self.pages = list(pages or [])
        self.default_page = ApiResponse.ok([], status_code=200)
        self.list_calls = []
        self.gates: list[asyncio.Event] = []
        self.stats = ApiResponse.ok(UserStats(total=42, active=40, inactive=2), status_code=200)
        self.bulk_calls = []
        self.bulk_result: ApiResponse | Exception = ApiResponse.ok(BulkUpdateResult(updated=2), status_code=200)
        self.delete_calls = []
        self.delete_results: list[ApiResponse] = []

    async def get_users(self, options=None):
        self.list_calls.append(options)
        page = self.pages.pop(0) if self.pages else self.default_page
        if self.gates:
            gate = self.gates.pop(0)
            await gate.wait()
        if isinstance(page, Exception):
            raise page
        return page

    async def get_user_stats(self, date_range=None):
        return self.stats

    async def bulk_update_users(self, user_ids, update_data):
        self.bulk_calls.append((list(user_ids), update_data))
        if isinstance(self.bulk_result, Exception):
            raise self.bulk_result
        return self.bulk_result

    async def delete_user(self, user_id, force=False):
        self.delete_calls.append((user_id, force))
        return self.delete_results.pop(0)


def test_fake_directory_satisfies_protocol():
    assert isinstance(FakeDirectory(), UserDirectory)


# ==============================================================================
# Loading
# ==============================================================================


async def test_mount_loads_users_and_stats():
    directory = FakeDirectory([ApiResponse.ok(_users("a", "b"), status_code=200)])
    controller = UserTableController(directory)

    await controller.mount()

    assert [u.id for u in controller.state.users] == ["a", "b"]
    assert controller.state.load_state is LoadState.LOADED
    assert controller.state.stats.total == 42
    assert controller.state.error is None


async def test_initial_options_merge_defaults():
    directory = FakeDirectory()
    controller = UserTableController(
        directory,
        pagination=PaginationParams(limit=10),
        filters=FilterParams(status=UserStatus.ACTIVE),
    )

    await controller.load_users()

    options = directory.list_calls[0]
    assert options.page == 1
    assert options.limit == 10
    assert options.sort_by == "createdAt"
    assert options.status is UserStatus.ACTIVE


async def test_initial_filters_are_copied():
    filters = FilterParams(category="staff")
    controller = UserTableController(FakeDirectory(), filters=filters)

    assert controller.state.filters == filters
    assert controller.state.filters is not filters


async def test_show_stats_false_skips_stats():
    directory = FakeDirectory()
    controller = UserTableController(directory, show_stats=False)

    await controller.mount()

    assert controller.state.stats is None


async def test_empty_stats_body_is_not_reported_as_failure(caplog):
    directory = FakeDirectory()
    directory.stats = ApiResponse.ok(None, status_code=204)
    controller = UserTableController(directory)

    with caplog.at_level(logging.WARNING, logger="cli.user_table"):
        await controller.mount()

    assert controller.state.stats is None
    assert [r for r in caplog.records if r.name == "cli.user_table"] == []


async def test_failed_stats_logs_warning(caplog):
    directory = FakeDirectory()
    directory.stats = _failure("stats unavailable", 503)
    controller = UserTableController(directory)

    with caplog.at_level(logging.WARNING, logger="cli.user_table"):
        await controller.mount()

    assert controller.state.stats is None
    assert controller.state.error is None
    assert "stats unavailable" in caplog.text


async def test_failed_load_keeps_previous_rows():
    directory = FakeDirectory([
        ApiResponse.ok(_users("a", "b"), status_code=200),
        _failure("Server error occurred"),
    ])
    errors = []
    controller = UserTableController(directory, hooks=TableHooks(on_error=errors.append))

    await controller.load_users()
    ok = await controller.load_users()

    assert ok is False
    assert [u.id for u in controller.state.users] == ["a", "b"]
    assert controller.state.error == "Server error occurred"
    assert controller.state.load_state is LoadState.ERROR
    assert errors == ["Server error occurred"]


async def test_retry_clears_error_on_success():
    directory = FakeDirectory([_failure("boom"), ApiResponse.ok(_users("a"), status_code=200)])
    controller = UserTableController(directory)

    await controller.load_users()
    await controller.retry()

    assert controller.state.error is None
    assert controller.state.load_state is LoadState.LOADED


async def test_dismiss_error_keeps_rows():
    directory = FakeDirectory([ApiResponse.ok(_users("a"), status_code=200), _failure("boom")])
    controller = UserTableController(directory)
    await controller.load_users()
    await controller.load_users()

    controller.dismiss_error()

    assert controller.state.error is None
    assert controller.state.load_state is LoadState.LOADED


async def test_validation_fault_becomes_error_message():
    directory = FakeDirectory([ValidationFault("Invalid email format", field="email")])
    controller = UserTableController(directory)

    await controller.load_users()

    assert controller.state.error == "Invalid email format"
    assert controller.state.load_state is LoadState.ERROR


async def test_on_users_update_hook_receives_rows():
    seen = []
    directory = FakeDirectory([ApiResponse.ok(_users("a"), status_code=200)])
    controller = UserTableController(directory, hooks=TableHooks(on_users_update=seen.append))

    await controller.load_users()

    assert [[u.id for u in batch] for batch in seen] == [["a"]]


async def test_overlapping_searches_latest_issued_wins():
    first_gate, second_gate = asyncio.Event(), asyncio.Event()
    directory = FakeDirectory([
        ApiResponse.ok(_users("old"), status_code=200),
        ApiResponse.ok(_users("new"), status_code=200),
    ])
    directory.gates = [first_gate, second_gate]
    controller = UserTableController(directory)

    first = asyncio.create_task(controller.search("ad"))
    await asyncio.sleep(0)
    second = asyncio.create_task(controller.search("ada"))
    await asyncio.sleep(0)

    # Resolve the newer search first, then let the stale one land.
    second_gate.set()
    assert await second is True
    first_gate.set()
    assert await first is False

    assert [u.id for u in controller.state.users] == ["new"]
    assert controller.state.search_query == "ada"
    assert directory.list_calls[1].search == "ada"


# ==============================================================================
# Search / filters / pagination
# ==============================================================================


async def test_search_resets_to_first_page():
    directory = FakeDirectory()
    controller = UserTableController(directory, pagination=PaginationParams(page=4))

    await controller.search("  lovelace ")

    options = directory.list_calls[-1]
    assert options.search == "lovelace"
    assert options.page == 1


async def test_set_filters_merges_and_resets_page():
    directory = FakeDirectory()
    controller = UserTableController(
        directory,
        pagination=PaginationParams(page=3),
        filters=FilterParams(category="staff"),
    )

    await controller.set_filters(status=UserStatus.SUSPENDED)

    options = directory.list_calls[-1]
    assert options.category == "staff"
    assert options.status is UserStatus.SUSPENDED
    assert options.page == 1


async def test_short_page_disables_next_page():
    directory = FakeDirectory([ApiResponse.ok(_users(*[f"u{i}" for i in range(7)]), status_code=200)])
    controller = UserTableController(directory, pagination=PaginationParams(page=2, limit=10))

    await controller.load_users()

    assert controller.has_next_page is False
    assert controller.has_previous_page is True
    assert controller.showing_range == (11, 17)
    assert await controller.next_page() is False
    assert len(directory.list_calls) == 1


async def test_full_page_enables_next_page():
    directory = FakeDirectory([ApiResponse.ok(_users("a", "b"), status_code=200)])
    controller = UserTableController(directory, pagination=PaginationParams(limit=2))

    await controller.load_users()
    await controller.next_page()

    assert directory.list_calls[-1].page == 2


async def test_first_page_has_no_previous_page():
    directory = FakeDirectory()
    controller = UserTableController(directory)

    await controller.load_users()

    assert controller.has_previous_page is False
    assert await controller.previous_page() is False
    assert controller.showing_range == (0, 0)


async def test_page_change_keeps_sort_and_limit_change_resets_page():
    directory = FakeDirectory()
    controller = UserTableController(directory)

    await controller.change_pagination(page=3)
    assert directory.list_calls[-1].page == 3

    await controller.change_pagination(limit=50)
    options = directory.list_calls[-1]
    assert options.page == 1
    assert options.limit == 50

    await controller.change_pagination(sort_by="username", sort_order="asc")
    options = directory.list_calls[-1]
    assert options.page == 1
    assert options.sort_by == "username"
    assert options.sort_order.value == "asc"


# ==============================================================================
# Selection
# ==============================================================================


async def test_toggle_and_select_all():
    directory = FakeDirectory([ApiResponse.ok(_users("a", "b", "c"), status_code=200)])
    controller = UserTableController(directory)
    await controller.load_users()

    controller.toggle_selection("b", True)
    assert controller.state.selected_ids == ["b"]
    assert controller.has_selection
    assert not controller.all_selected

    controller.select_all(True)
    assert controller.all_selected

    controller.toggle_selection("a", False)
    assert controller.state.selected_ids == ["b", "c"]

    controller.select_all(False)
    assert not controller.has_selection


async def test_selection_is_filtered_after_reload():
    directory = FakeDirectory([
        ApiResponse.ok(_users("a", "b", "c"), status_code=200),
        ApiResponse.ok(_users("b", "d"), status_code=200),
    ])
    controller = UserTableController(directory)
    await controller.load_users()
    controller.select_all(True)

    await controller.load_users()

    assert controller.state.selected_ids == ["b"]


async def test_select_user_calls_hook():
    picked = []
    controller = UserTableController(FakeDirectory(), hooks=TableHooks(on_user_select=picked.append))
    user = _users("a")[0]

    controller.select_user(user)

    assert picked == [user]


# ==============================================================================
# Mutations
# ==============================================================================


async def test_bulk_update_reloads_and_clears_selection():
    directory = FakeDirectory([
        ApiResponse.ok(_users("a", "b"), status_code=200),
        ApiResponse.ok(_users("a", "b"), status_code=200),
    ])
    controller = UserTableController(directory)
    await controller.load_users()
    controller.select_all(True)

    ok = await controller.bulk_update(UpdateUserData(is_active=False))

    assert ok is True
    assert directory.bulk_calls[0][0] == ["a", "b"]
    assert len(directory.list_calls) == 2
    assert controller.state.selected_ids == []


async def test_bulk_update_without_selection_is_noop():
    directory = FakeDirectory()
    controller = UserTableController(directory)

    assert await controller.bulk_update(UpdateUserData(is_active=True)) is False
    assert directory.bulk_calls == []


async def test_bulk_update_failure_keeps_selection():
    directory = FakeDirectory([ApiResponse.ok(_users("a"), status_code=200)])
    directory.bulk_result = _failure("Bulk update rejected", 422)
    controller = UserTableController(directory)
    await controller.load_users()
    controller.select_all(True)

    ok = await controller.bulk_update(UpdateUserData(is_active=True))

    assert ok is False
    assert controller.state.error == "Bulk update rejected"
    assert controller.state.selected_ids == ["a"]


async def test_delete_conflict_then_forced_delete():
    directory = FakeDirectory([
        ApiResponse.ok(_users("a", "b"), status_code=200),
        ApiResponse.ok(_users("b"), status_code=200),
    ])
    directory.delete_results = [
        _failure("User has active subscriptions", 409),
        ApiResponse.ok(DeleteResult(deleted=True), status_code=200),
    ]
    controller = UserTableController(directory)
    await controller.load_users()
    controller.toggle_selection("a", True)

    assert await controller.delete_user("a") is False
    assert controller.state.error == "User has active subscriptions"
    assert [u.id for u in controller.state.users] == ["a", "b"]

    assert await controller.delete_user("a", force=True) is True
    assert directory.delete_calls == [("a", False), ("a", True)]
    assert [u.id for u in controller.state.users] == ["b"]
    assert controller.state.error is None
    assert controller.state.selected_ids == []


async def test_delete_declined_by_confirm_hook():
    prompts = []

    def confirm(message):
        prompts.append(message)
        return False

    directory = FakeDirectory()
    controller = UserTableController(directory, hooks=TableHooks(confirm=confirm))

    assert await controller.delete_user("a") is False
    assert prompts == [DELETE_CONFIRMATION]
    assert directory.delete_calls == []


async def test_delete_awaits_async_confirm_hook():
    directory = FakeDirectory([ApiResponse.ok(_users("b"), status_code=200)])
    directory.delete_results = [ApiResponse.ok(DeleteResult(deleted=True), status_code=200)]

    async def confirm(message):
        await asyncio.sleep(0)
        return message == DELETE_CONFIRMATION

    controller = UserTableController(directory, hooks=TableHooks(confirm=confirm))

    assert await controller.delete_user("a") is True
    assert directory.delete_calls == [("a", False)]
