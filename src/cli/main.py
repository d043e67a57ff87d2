"""CLI principal (Typer).

Por qué Typer:
- Tipado en la firma de los comandos (opciones y argumentos sin boilerplate).
- Ayuda y autocompletado gratis; Rich se encarga del render.

Los comandos son finos: construyen el `ApiClient` desde `AppSettings`,
llaman a `UserService` y pintan el envelope. Los `ValidationFault` de
pre-flight se pliegan al mismo envelope para pintar un único tipo de error.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer
from rich.console import Console

from adapters.http_client import ApiClient
from adapters.json_exporter import dumps, export_json
from cli import doctor
from cli.ui_components import (
    build_error_panel,
    build_stats_panel,
    build_user_panel,
    build_users_table,
    build_validation_panel,
    print_banner,
    render_table_view,
)
from cli.user_table import TableHooks, UserTableController
from core.config import AppSettings
from core.domain.envelope import ApiResponse
from core.domain.models import (
    CreateUserData,
    DateRange,
    FilterParams,
    PaginationParams,
    SortOrder,
    UpdateUserData,
    UserSearchOptions,
    UserStatus,
)
from core.errors import ConfigurationError, ValidationFault
from core.observability import setup_logging
from core.services.user_service import UserService
from core.utils.strings import generate_random_string

logger = logging.getLogger(__name__)

app = typer.Typer(no_args_is_help=True, help="Manage users of a remote user API.")
users_app = typer.Typer(no_args_is_help=True, help="List, inspect and modify users.")
app.add_typer(users_app, name="users")
app.add_typer(doctor.app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)

GENERATED_PASSWORD_LENGTH = 16


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR."),
    log_format: Optional[str] = typer.Option(None, "--log-format", help="text or json."),
) -> None:
    """Global options shared by every command (defaults come from USERDESK_LOG_*)."""

    settings = AppSettings()
    fmt = log_format or settings.log_format
    if fmt not in ("text", "json"):
        raise typer.BadParameter("log format must be 'text' or 'json'", param_hint="--log-format")
    setup_logging(level=(log_level or settings.log_level).upper(), fmt=fmt)


# -- helpers -------------------------------------------------------------------


def _run_with_service(action: Callable[[UserService], Awaitable[ApiResponse[Any]]]) -> ApiResponse[Any]:
    """Abre el cliente, ejecuta `action` y pliega los faults de pre-flight al envelope."""

    settings = AppSettings()

    async def runner() -> ApiResponse[Any]:
        async with ApiClient.from_settings(settings) as api:
            service = UserService(
                api,
                base_endpoint=settings.users_endpoint,
                default_pagination=PaginationParams(limit=settings.page_size),
            )
            try:
                return await action(service)
            except ValidationFault as exc:
                return ApiResponse.from_validation_fault(exc)

    try:
        return asyncio.run(runner())
    except ConfigurationError as exc:
        _err_console.print(build_error_panel(exc.message, retry_hint=False))
        raise typer.Exit(code=2) from exc


def _fail_on_error(response: ApiResponse[Any]) -> None:
    if response.success:
        return
    message = response.error or "Request failed"
    if response.status_code:
        message = f"{message} (HTTP {response.status_code})"
    _err_console.print(build_error_panel(message, retry_hint=False))
    raise typer.Exit(code=1)


def _emit(response: ApiResponse[Any], *, as_json: bool, output: Path | None) -> bool:
    """Salida JSON (stdout o fichero). Devuelve True si ya se emitió."""

    if output is not None:
        path = export_json(response, output_path=output)
        _console.print(f"[green]Saved JSON to:[/green] {path}")
        return True
    if as_json:
        typer.echo(dumps(response))
        return True
    return False


def _parse_status(value: str | None) -> UserStatus | None:
    if value is None:
        return None
    try:
        return UserStatus(value.lower())
    except ValueError as exc:
        choices = ", ".join(status.value for status in UserStatus)
        raise typer.BadParameter(f"status must be one of: {choices}") from exc


def _parse_sort_order(value: str | None) -> SortOrder | None:
    if value is None:
        return None
    try:
        return SortOrder(value.lower())
    except ValueError as exc:
        raise typer.BadParameter("sort order must be 'asc' or 'desc'") from exc


def _parse_limit(value: str) -> int:
    if not value.isdigit() or not 1 <= int(value) <= 100:
        raise typer.BadParameter("limit must be between 1 and 100")
    return int(value)


# -- users ---------------------------------------------------------------------


@users_app.command("list")
def list_users(
    page: int = typer.Option(1, "--page", min=1),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, max=100),
    sort_by: Optional[str] = typer.Option(None, "--sort-by"),
    sort_order: Optional[str] = typer.Option(None, "--sort-order", help="asc or desc."),
    search: Optional[str] = typer.Option(None, "--search", "-s"),
    status: Optional[str] = typer.Option(None, "--status", help="active, inactive or suspended."),
    category: Optional[str] = typer.Option(None, "--category"),
    role: Optional[str] = typer.Option(None, "--role"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw envelope as JSON."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the envelope to a JSON file."),
) -> None:
    """List users (one page)."""

    options = UserSearchOptions(
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=_parse_sort_order(sort_order),
        search=search,
        status=_parse_status(status),
        category=category,
        role=role,
    )
    response = _run_with_service(lambda service: service.get_users(options))
    if _emit(response, as_json=as_json, output=output):
        if not response.success:
            raise typer.Exit(code=1)
        return
    _fail_on_error(response)

    users = response.data or []
    if not users:
        _console.print("[dim]No users found[/dim]")
        return
    _console.print(build_users_table(users))
    meta = response.meta
    if meta is not None and meta.total is not None:
        first = (page - 1) * (meta.limit or len(users)) + 1
        _console.print(f"[dim]Showing {first} to {first + len(users) - 1} of {meta.total} users[/dim]")


@users_app.command("show")
def show_user(
    user_id: str = typer.Argument(..., help="User ID."),
    profile: bool = typer.Option(False, "--profile", help="Include the extended profile."),
    as_json: bool = typer.Option(False, "--json"),
) -> None:
    """Show a single user."""

    response = _run_with_service(lambda service: service.get_user_by_id(user_id, include_profile=profile))
    if _emit(response, as_json=as_json, output=None):
        if not response.success:
            raise typer.Exit(code=1)
        return
    _fail_on_error(response)
    _console.print(build_user_panel(response.data))


def _create_payload(
    username: str,
    email: str,
    full_name: str,
    password: str | None,
    generate_password: bool,
    avatar: str | None,
) -> tuple[CreateUserData, str | None]:
    generated = None
    if generate_password:
        generated = generate_random_string(GENERATED_PASSWORD_LENGTH)
        password = generated
    data = CreateUserData(
        username=username,
        email=email,
        full_name=full_name,
        password=password or "",
        avatar=avatar,
    )
    return data, generated


@users_app.command("create")
def create_user(
    username: str = typer.Option(..., "--username", "-u"),
    email: str = typer.Option(..., "--email", "-e"),
    full_name: str = typer.Option(..., "--full-name", "-n"),
    password: Optional[str] = typer.Option(None, "--password", help="Prompted for when omitted."),
    generate_password: bool = typer.Option(False, "--generate-password", help="Use a random 16-char password."),
    avatar: Optional[str] = typer.Option(None, "--avatar"),
    as_json: bool = typer.Option(False, "--json"),
) -> None:
    """Create a user (validated locally before any request)."""

    if password is None and not generate_password:
        password = typer.prompt("Password", hide_input=True, confirmation_prompt=True)

    data, generated = _create_payload(username, email, full_name, password, generate_password, avatar)
    response = _run_with_service(lambda service: service.create_user(data))
    if _emit(response, as_json=as_json, output=None):
        if not response.success:
            raise typer.Exit(code=1)
        return
    _fail_on_error(response)

    _console.print(build_user_panel(response.data))
    if generated:
        _console.print(f"[yellow]Generated password:[/yellow] {generated}")


@users_app.command("update")
def update_user(
    user_id: str = typer.Argument(...),
    username: Optional[str] = typer.Option(None, "--username", "-u"),
    email: Optional[str] = typer.Option(None, "--email", "-e"),
    full_name: Optional[str] = typer.Option(None, "--full-name", "-n"),
    avatar: Optional[str] = typer.Option(None, "--avatar"),
    active: Optional[bool] = typer.Option(None, "--active/--inactive"),
    as_json: bool = typer.Option(False, "--json"),
) -> None:
    """Partially update a user; only the given fields are sent."""

    data = UpdateUserData(username=username, email=email, full_name=full_name, avatar=avatar, is_active=active)
    response = _run_with_service(lambda service: service.update_user(user_id, data))
    if _emit(response, as_json=as_json, output=None):
        if not response.success:
            raise typer.Exit(code=1)
        return
    _fail_on_error(response)
    _console.print(build_user_panel(response.data))


@users_app.command("delete")
def delete_user(
    user_id: str = typer.Argument(...),
    force: bool = typer.Option(False, "--force", help="Override server-side dependency checks."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete a user."""

    if not yes:
        typer.confirm(f"Delete user {user_id}? This action cannot be undone.", abort=True)
    response = _run_with_service(lambda service: service.delete_user(user_id, force))
    _fail_on_error(response)
    _console.print(f"[green]Deleted user[/green] {user_id}")


@users_app.command("bulk-update")
def bulk_update(
    user_ids: list[str] = typer.Argument(..., help="IDs of the users to update."),
    active: Optional[bool] = typer.Option(None, "--active/--inactive"),
    avatar: Optional[str] = typer.Option(None, "--avatar"),
) -> None:
    """Apply the same partial update to several users."""

    data = UpdateUserData(is_active=active, avatar=avatar)
    response = _run_with_service(lambda service: service.bulk_update_users(user_ids, data))
    _fail_on_error(response)
    result = response.data
    updated = result.updated if result is not None else len(user_ids)
    _console.print(f"[green]Updated {updated} user(s)[/green]")
    if result is not None and result.failed:
        _console.print(f"[yellow]Failed:[/yellow] {', '.join(result.failed)}")


@users_app.command("stats")
def stats(
    start: Optional[datetime] = typer.Option(None, "--from", help="Range start (ISO date)."),
    end: Optional[datetime] = typer.Option(None, "--to", help="Range end (ISO date)."),
    as_json: bool = typer.Option(False, "--json"),
) -> None:
    """Show aggregate user statistics."""

    if (start is None) != (end is None):
        raise typer.BadParameter("--from and --to must be given together")
    try:
        date_range = DateRange(start=start, end=end) if start is not None else None
    except ValueError as exc:
        raise typer.BadParameter("--from must not be after --to") from exc

    response = _run_with_service(lambda service: service.get_user_stats(date_range))
    if _emit(response, as_json=as_json, output=None):
        if not response.success:
            raise typer.Exit(code=1)
        return
    _fail_on_error(response)
    _console.print(build_stats_panel(response.data))


@users_app.command("validate")
def validate(
    username: str = typer.Option("", "--username", "-u"),
    email: str = typer.Option("", "--email", "-e"),
    full_name: str = typer.Option("", "--full-name", "-n"),
    password: str = typer.Option("", "--password"),
) -> None:
    """Check user data locally without calling the API."""

    report = UserService.validate_user_data(
        CreateUserData(username=username, email=email, full_name=full_name, password=password)
    )
    _console.print(build_validation_panel(report))
    if not report.is_valid:
        raise typer.Exit(code=1)


# -- browse (interactive) -------------------------------------------------------

_BROWSE_HELP = (
    "[dim]n/p page  s <text> search  f <status|all> filter  l <limit> page size  "
    "o <field> [asc|desc] sort  t <#> toggle  a select all  c clear  "
    "b <active|inactive> bulk  d <#> [force] delete  r retry  x dismiss  q quit[/dim]"
)


def _row_user_id(controller: UserTableController, token: str) -> str | None:
    try:
        index = int(token) - 1
    except ValueError:
        return None
    users = controller.state.users
    if 0 <= index < len(users):
        return users[index].id
    return None


async def _handle_browse_command(controller: UserTableController, line: str) -> bool:
    """Aplica un comando del modo interactivo. Devuelve False para salir."""

    command, _, rest = line.strip().partition(" ")
    rest = rest.strip()
    command = command.lower()

    if command in ("q", "quit", "exit"):
        return False
    if command == "n":
        await controller.next_page()
    elif command == "p":
        await controller.previous_page()
    elif command == "s":
        await controller.search(rest)
    elif command == "f":
        status = None if rest in ("", "all") else _parse_status(rest)
        await controller.set_filters(status=status)
    elif command == "l" and rest:
        await controller.change_pagination(limit=_parse_limit(rest))
    elif command == "o" and rest:
        field, _, order = rest.partition(" ")
        await controller.change_pagination(sort_by=field, sort_order=_parse_sort_order(order.strip() or None))
    elif command == "t":
        user_id = _row_user_id(controller, rest)
        if user_id is not None:
            controller.toggle_selection(user_id, not controller.is_selected(user_id))
    elif command == "a":
        controller.select_all(not controller.all_selected)
    elif command == "c":
        controller.clear_selection()
    elif command == "b" and rest in ("active", "inactive"):
        await controller.bulk_update(UpdateUserData(is_active=rest == "active"))
    elif command == "d":
        target, _, flag = rest.partition(" ")
        user_id = _row_user_id(controller, target)
        if user_id is not None:
            await controller.delete_user(user_id, force=flag.strip() == "force")
    elif command == "r":
        await controller.retry()
    elif command == "x":
        controller.dismiss_error()
    else:
        _console.print(_BROWSE_HELP)
    return True


@users_app.command("browse")
def browse(
    limit: Optional[int] = typer.Option(None, "--limit", min=1, max=100),
    status: Optional[str] = typer.Option(None, "--status"),
    no_stats: bool = typer.Option(False, "--no-stats", help="Hide the statistics panel."),
) -> None:
    """Interactive paginated user table."""

    settings = AppSettings()
    print_banner(_console)

    hooks = TableHooks(
        confirm=lambda message: asyncio.to_thread(typer.confirm, message, default=False),
        on_error=lambda message: logger.info("Table error: %s", message),
    )

    async def session() -> None:
        async with ApiClient.from_settings(settings) as api:
            service = UserService(api, base_endpoint=settings.users_endpoint)
            controller = UserTableController(
                service,
                pagination=PaginationParams(limit=limit or settings.page_size),
                filters=FilterParams(status=_parse_status(status)),
                show_stats=not no_stats,
                hooks=hooks,
            )
            await controller.mount()
            _console.print(_BROWSE_HELP)
            while True:
                _console.print(render_table_view(controller, show_stats=not no_stats))
                line = await asyncio.to_thread(typer.prompt, ">", default="", show_default=False)
                try:
                    keep_going = await _handle_browse_command(controller, line)
                except typer.BadParameter as exc:
                    _console.print(f"[red]{exc.message}[/red]")
                    continue
                if not keep_going:
                    break

    try:
        asyncio.run(session())
    except ConfigurationError as exc:
        _err_console.print(build_error_panel(exc.message, retry_hint=False))
        raise typer.Exit(code=2) from exc


def run() -> None:
    app()


if __name__ == "__main__":
    run()
