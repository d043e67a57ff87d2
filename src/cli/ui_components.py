"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos (`users list`, `users browse`).

Todo lo que se pinta sale del estado del controlador: estos builders no
hacen I/O ni disparan cargas.
"""

from __future__ import annotations

from datetime import datetime

from rich.align import Align
from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import User, UserStats, UserValidationReport
from core.utils.formatting import format_date, format_number
from core.utils.strings import capitalize_words, generate_hash, truncate_string
from cli.user_table import LoadState, TableState, UserTableController

_AVATAR_COLOURS = ("cyan", "magenta", "green", "yellow", "blue", "red", "bright_cyan", "bright_magenta")

EMAIL_WIDTH = 32


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida.

    Por qué aquí:
    - Evita dependencias circulares (main <-> doctor).
    - Permite desactivar banner en modos no interactivos (JSON/pipelines).
    """

    title = Text("USERDESK", style="bold cyan")
    subtitle = Text("Gestión de usuarios • Búsqueda • Acciones masivas", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def avatar_badge(user: User) -> Text:
    """Inicial del usuario con un color estable derivado del username."""

    source = user.full_name or user.username
    initial = source[:1].upper() or "?"
    colour = _AVATAR_COLOURS[generate_hash(user.username) % len(_AVATAR_COLOURS)]
    return Text(f" {initial} ", style=f"bold black on {colour}")


def status_badge(user: User) -> Text:
    if user.is_active:
        return Text("Active", style="bold green")
    return Text("Inactive", style="bold red")


def build_users_table(
    users: list[User],
    *,
    selected_ids: list[str] | None = None,
    now: datetime | None = None,
    title: str = "Users",
) -> Table:
    """Tabla de usuarios; la primera columna marca la selección."""

    selected = set(selected_ids or [])

    table = Table(title=title, show_lines=False)
    table.add_column("", no_wrap=True, width=3)
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Username", style="cyan", no_wrap=True)
    table.add_column("Email", style="magenta")
    table.add_column("Status", no_wrap=True)
    table.add_column("Created", style="dim", no_wrap=True)

    for index, user in enumerate(users, start=1):
        table.add_row(
            Text("[x]" if user.id in selected else "[ ]"),
            str(index),
            avatar_badge(user),
            capitalize_words(user.full_name, preserve_existing=True),
            f"@{user.username}",
            truncate_string(user.email, EMAIL_WIDTH),
            status_badge(user),
            format_date(user.created_at, "relative", now=now),
        )
    return table


def build_user_panel(user: User) -> Panel:
    """Detalle de un usuario (`users show`)."""

    body = Text()
    body.append(f"{user.full_name}\n", style="bold")
    body.append(f"@{user.username}  ", style="cyan")
    body.append(f"<{user.email}>\n\n", style="magenta")
    body.append("Status:  ")
    body.append_text(status_badge(user))
    body.append(f"\nID:      {user.id}")
    body.append(f"\nCreated: {format_date(user.created_at, 'long')}")
    body.append(f"\nUpdated: {format_date(user.updated_at, 'long')}")
    if user.avatar:
        body.append(f"\nAvatar:  {user.avatar}", style="dim")
    return Panel(body, title=avatar_badge(user), title_align="left", border_style="cyan")


def _count(value: int) -> str:
    return format_number(value, precision=0 if abs(value) < 1000 else 1)


def build_stats_panel(stats: UserStats) -> Panel:
    """Panel de agregados; los campos opcionales solo aparecen si llegan."""

    table = Table.grid(padding=(0, 3))
    table.add_column(style="bold")
    table.add_column(justify="right")
    table.add_row("Total", _count(stats.total))
    table.add_row("Active", Text(_count(stats.active), style="green"))
    table.add_row("Inactive", Text(_count(stats.inactive), style="yellow"))
    table.add_row("Suspended", Text(_count(stats.suspended), style="red"))
    if stats.new_this_month is not None:
        table.add_row("New this month", _count(stats.new_this_month))
    if stats.new_this_year is not None:
        table.add_row("New this year", _count(stats.new_this_year))
    if stats.growth_rate is not None:
        table.add_row("Growth", format_number(stats.growth_rate / 100, style="percent") + "%")
    return Panel(table, title=Text("Statistics", style="bold yellow"), border_style="yellow")


def pagination_summary(controller: UserTableController) -> str:
    first, last = controller.showing_range
    state = controller.state
    total = state.total if state.total is not None else (state.stats.total if state.stats else None)
    if total is None:
        return f"Showing {first} to {last} users (page {controller.page})"
    return f"Showing {first} to {last} of {total} users"


def build_pagination_footer(controller: UserTableController) -> Text:
    text = Text(pagination_summary(controller), style="dim")
    nav: list[str] = []
    if controller.has_previous_page:
        nav.append("[p]revious")
    if controller.has_next_page:
        nav.append("[n]ext")
    if nav:
        text.append("   " + "  ".join(nav), style="cyan")
    if controller.has_selection:
        text.append(f"   {len(controller.state.selected_ids)} selected", style="bold")
    return text


def build_error_panel(message: str, *, retry_hint: bool = True) -> Panel:
    body = Text(message, style="red")
    if retry_hint:
        body.append("\n\nType 'r' to retry or 'x' to dismiss.", style="dim")
    return Panel(body, title=Text("Error", style="bold red"), border_style="red")


def build_validation_panel(report: UserValidationReport) -> Panel:
    body = Text()
    if report.is_valid:
        body.append("Valid user data\n", style="bold green")
    for error in report.errors:
        body.append(f"✗ {error}\n", style="red")
    for warning in report.warnings:
        body.append(f"! {warning}\n", style="yellow")
    border = "green" if report.is_valid else "red"
    return Panel(body, title="Validation", border_style=border)


def render_table_view(controller: UserTableController, *, show_stats: bool = True) -> RenderableType:
    """Compone la vista completa del listado a partir del estado actual."""

    state: TableState = controller.state
    parts: list[RenderableType] = []

    if show_stats and state.stats is not None:
        parts.append(build_stats_panel(state.stats))
    if state.error:
        parts.append(build_error_panel(state.error))
    if state.load_state is LoadState.LOADING:
        parts.append(Text("Loading users...", style="dim italic"))
    elif state.users:
        parts.append(build_users_table(state.users, selected_ids=state.selected_ids))
        parts.append(build_pagination_footer(controller))
    elif state.load_state is LoadState.LOADED:
        parts.append(Text("No users found", style="dim"))

    return Group(*parts)
