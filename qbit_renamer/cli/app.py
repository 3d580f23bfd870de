"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import shutil
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from qbit_renamer import __version__
from qbit_renamer.api.client import QBittorrentClient
from qbit_renamer.core import BatchRenameApplier, SuggestionEngine, TorrentEnricher
from qbit_renamer.exceptions import QbitRenamerError
from qbit_renamer.models.config import AppConfig
from qbit_renamer.models.torrent import MediaType
from qbit_renamer.storage.config_manager import ConfigManager
from qbit_renamer.utils.timeouts import run_with_timeout

from .formatters import (
    print_batch_result,
    print_config,
    print_suggestions_table,
    print_torrents_table,
    print_validation_table,
)

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("qbit_renamer")

app = typer.Typer(
    name="qbit-renamer",
    help=(
        "Browse qBittorrent torrents and rename their files with FileBot"
        " suggestions. Use 'qbit-renamer <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "qbit-renamer"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"

# Set by the callback when --config is given
_state = {"config_file": CONFIG_FILE}


def _load_config() -> AppConfig:
    return ConfigManager(_state["config_file"]).load_config()


def _run_with_client(config: AppConfig, work):
    """Runs `work(client)` on a fresh event loop and always closes the client."""

    async def _runner():
        client = QBittorrentClient(config)
        try:
            return await work(client)
        finally:
            await client.close()

    return asyncio.run(_runner())


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    config_file: Path | None = typer.Option(
        None, "--config", "-c", help="Path to an alternative config.ini."
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """qBittorrent + FileBot renamer"""
    if version:
        console.print(f"[bold]qbit-renamer[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("qbit_renamer").setLevel(log_level)

    if config_file:
        _state["config_file"] = config_file

    if show_config:
        path = _state["config_file"]
        if not path.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]qbit-renamer init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config = _load_config()
        print_config(path, config.model_dump(exclude={"config_path"}))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    url: str = typer.Argument(..., help="qBittorrent Web UI URL, e.g. http://localhost:8080"),
    username: str = typer.Argument(..., help="Web UI username."),
    password: str = typer.Argument(..., help="Web UI password."),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Initialize configuration with qBittorrent credentials."""
    path = _state["config_file"]
    if (
        path.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    config_manager = ConfigManager(path)
    config_manager.save_new_config(
        {
            "qbittorrent_url": url,
            "qbittorrent_username": username,
            "qbittorrent_password": password,
        }
    )
    console.print(f"\n[bold green]✓ Configuration saved to '{path}'[/bold green]")
    console.print("Check the connection with: [cyan]qbit-renamer diagnose[/cyan]")


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Address to listen on."),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to listen on."),
):
    """Start the HTTP API server."""
    from qbit_renamer.web.server import start_server

    config = _load_config()
    start_server(config, host=host, port=port)


@app.command()
def torrents():
    """List torrents with their properties and files."""
    config = _load_config()

    async def _list(client: QBittorrentClient):
        return await run_with_timeout(
            TorrentEnricher(client).list_enriched_torrents(),
            config.list_timeout,
            "Torrent listing",
        )

    print_torrents_table(_run_with_client(config, _list))


@app.command()
def suggest(
    torrent_hash: str = typer.Argument(..., help="40-character torrent info hash."),
    media_type: MediaType = typer.Option(
        MediaType.TV, "--type", "-t", help="Which metadata database to match against."
    ),
    show_output: bool = typer.Option(
        False, "--output", help="Also print FileBot's raw output."
    ),
):
    """Show FileBot rename suggestions for a torrent (nothing is renamed)."""
    config = _load_config()

    async def _suggest(client: QBittorrentClient):
        return await run_with_timeout(
            SuggestionEngine(client, config).generate(torrent_hash, media_type.value),
            config.suggest_timeout,
            "Suggestion generation",
        )

    report = _run_with_client(config, _suggest)
    if show_output:
        console.print(report.output, markup=False, highlight=False)
    print_suggestions_table(report.suggestions)


@app.command()
def rename(
    torrent_hash: str = typer.Argument(..., help="40-character torrent info hash."),
    media_type: MediaType = typer.Option(
        MediaType.TV, "--type", "-t", help="Which metadata database to match against."
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Apply the suggestions without asking."
    ),
):
    """Generate FileBot suggestions for a torrent and apply them through qBittorrent."""
    config = _load_config()

    async def _rename(client: QBittorrentClient):
        report = await run_with_timeout(
            SuggestionEngine(client, config).generate(torrent_hash, media_type.value),
            config.suggest_timeout,
            "Suggestion generation",
        )
        print_suggestions_table(report.suggestions)
        if not report.suggestions:
            return None
        if not yes and not typer.confirm(
            f"Apply {len(report.suggestions)} rename(s)?"
        ):
            console.print("[yellow]Operation cancelled.[/yellow]")
            return None
        return await BatchRenameApplier(client, config).apply_renames(
            torrent_hash, report.suggestions
        )

    result = _run_with_client(config, _rename)
    if result is None:
        return
    print_batch_result(result)
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = _load_config()
        print_validation_table(config)
    except QbitRenamerError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def diagnose():
    """Diagnose common configuration and connectivity issues."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    issues_found = False
    try:
        config = _load_config()
        console.print("[green]✓[/] Configuration is valid and can be loaded.")
    except QbitRenamerError as e:
        console.print(f"[red]✗ Configuration validation failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    filebot = shutil.which(config.filebot_path)
    if filebot:
        console.print(f"[green]✓[/] FileBot found at: [dim]{filebot}[/dim]")
    else:
        console.print(f"[red]✗ FileBot not found:[/] {config.filebot_path}")
        issues_found = True

    console.print(f"\n[dim]Testing connection to {config.qbittorrent_url}...[/dim]")

    async def test_connection(client: QBittorrentClient) -> bool:
        if not await client.authenticate():
            console.print("[red]✗ Could not log in to qBittorrent.[/red]")
            return False
        try:
            version = await client.fetch_app_version()
        except Exception as e:
            console.print(f"[red]✗ Logged in, but the API call failed: {e}[/red]")
            return False
        console.print(f"[green]✓[/] Logged in to qBittorrent {version}.")
        return True

    if not _run_with_client(config, test_connection):
        issues_found = True

    console.print()
    if not issues_found:
        console.print(
            "[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n"
        )
    else:
        console.print(
            "[bold red]✗ Some issues were found. "
            "Please review the messages above.[/bold red]\n"
        )
        raise typer.Exit(code=1)
