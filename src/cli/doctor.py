"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import ApiClient, ApiClientConfig
from core.config import AppSettings, get_user_env_file, write_user_env_vars
from core.domain.http import RetryPolicy

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_api(settings: AppSettings) -> tuple[bool, str]:
    # Single attempt: doctor reports reachability, it does not wait out retries.
    config = ApiClientConfig.from_settings(settings).model_copy(update={"retry": RetryPolicy(attempts=1, delay=0)})
    async with ApiClient(config) as api:
        response = await api.get(settings.users_endpoint, {"limit": 1})
    if response.success:
        return True, f"HTTP {response.status_code}"
    if response.status_code:
        return False, f"HTTP {response.status_code}: {response.error}"
    return False, response.error or "unknown error"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="USERDESK Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("API base_url", "OK", settings.api_base_url)
    table.add_row("Users endpoint", "OK", settings.users_endpoint)
    table.add_row(
        "Retry policy",
        "OK",
        f"{settings.retry_attempts} attempt(s), {settings.retry_delay_seconds:g}s apart",
    )
    if settings.with_credentials and settings.auth_token is None:
        table.add_row("Auth token", "FAIL", "with_credentials is on but no token is set")
    elif settings.auth_token is not None:
        table.add_row("Auth token", "OK", "Bearer token configured")
    else:
        table.add_row("Auth token", "OPTIONAL", "No token set -> anonymous requests")

    user_env = get_user_env_file()
    table.add_row("User config", "OK" if user_env.exists() else "OPTIONAL", str(user_env))

    # Connectivity (best-effort)
    ok_api, detail_api = asyncio.run(_check_api(settings))
    table.add_row("API connectivity", "OK" if ok_api else "FAIL", detail_api)

    _console.print(table)

    if not ok_api:
        _console.print(
            "\n[yellow]Note:[/yellow] run `userdesk doctor setup` to point the CLI at your API."
        )


@app.command(name="setup")
def setup() -> None:
    """Interactive API setup (stores config in the user config .env).

    Designed for non-Python users: no manual .env editing.
    """

    settings = AppSettings()

    base_url = typer.prompt("API base URL", default=settings.api_base_url, show_default=True).strip()
    token = typer.prompt(
        "API token (leave empty for none)",
        default="",
        show_default=False,
        hide_input=True,
    ).strip()

    if not base_url:
        raise typer.BadParameter("base_url is required")

    values = {"USERDESK_API_BASE_URL": base_url}
    if token:
        values["USERDESK_AUTH_TOKEN"] = token
        values["USERDESK_WITH_CREDENTIALS"] = "true"

    env_path = write_user_env_vars(values)

    _console.print(f"[green]Saved API config to:[/green] {env_path}")
