"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from qbit_renamer.models.config import AppConfig
from qbit_renamer.models.torrent import BatchResult, RenameSuggestion
from qbit_renamer.storage.config_manager import SENSITIVE_KEYS
from qbit_renamer.utils.formatting import format_progress, format_size, format_tags


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "AuthenticationError": [
            "• Verify the qBittorrent username and password in the configuration file.",
            "• Check that the Web UI is enabled and reachable at the configured URL.",
            "• qBittorrent bans an IP after repeated failed logins; wait and retry.",
        ],
        "ConfigurationError": [
            "• Run `qbit-renamer init` to create a configuration file.",
            "• Run `qbit-renamer validate` to see which setting is wrong.",
        ],
        "ExternalToolError": [
            "• Make sure FileBot is installed and licensed.",
            "• Set `filebot_path` if FileBot is not on your PATH.",
            "• Run the command with -vv to see FileBot's error output.",
        ],
        "OperationTimeoutError": [
            "• qBittorrent or FileBot took too long to answer.",
            "• Increase the matching timeout in the configuration file.",
        ],
        "NotFoundError": [
            "• Check that the torrent hash is correct and the torrent has metadata.",
        ],
        "ClientResponseError": [
            "• qBittorrent rejected the request.",
            "• The torrent may have been removed, or the file path changed.",
        ],
        "ClientConnectorError": [
            "• Could not connect to qBittorrent.",
            "• Check `qbittorrent_url` and that the daemon is running.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    content = ""
    for key, value in sorted(config_data.items()):
        if key in SENSITIVE_KEYS:
            value = "[hidden]"
        content += f"{key} = {escape(str(value))}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: AppConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("qBittorrent:", f"[green]{config.qbittorrent_url}[/green]")
    table.add_row("Username:", config.qbittorrent_username or "[dim](none)[/dim]")
    table.add_row(
        "Retries:",
        f"{config.max_auth_retries} login / {config.max_retries} expired session",
    )
    table.add_row(
        "Timeouts:",
        f"auth {config.auth_timeout:g}s, request {config.request_timeout:g}s, "
        f"FileBot {config.filebot_timeout:g}s",
    )
    table.add_row("FileBot:", config.filebot_path)
    table.add_row(
        "TV:", f"{config.tv_database} [dim]{escape(config.tv_format)}[/dim]"
    )
    table.add_row(
        "Movies:", f"{config.movie_database} [dim]{escape(config.movie_format)}[/dim]"
    )
    table.add_row(
        "Limits:",
        f"{config.max_rename_batch_size} renames per batch, "
        f"{config.max_path_length} chars per path",
    )
    table.add_row("Listen:", f"{config.host}:{config.port}")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_torrents_table(torrents: list[dict[str, Any]]):
    """Displays the enriched torrent list."""
    console = Console()
    if not torrents:
        console.print("[yellow]No torrents found.[/yellow]")
        return

    table = Table(box=box.ROUNDED, show_lines=False)
    table.add_column("Hash", style="dim", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("State", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("Category")
    table.add_column("Tags", style="dim")
    table.add_column("Files", justify="right")

    for torrent in torrents:
        files = torrent.get("files")
        table.add_row(
            torrent.get("hash", "")[:12],
            escape(torrent.get("name", "")),
            torrent.get("state", ""),
            format_size(torrent.get("size", 0)),
            format_progress(torrent.get("progress", 0.0)),
            escape(torrent.get("category") or ""),
            escape(format_tags(torrent)),
            str(len(files)) if files is not None else "[red]?[/red]",
        )

    console.print(table)


def print_suggestions_table(suggestions: list[RenameSuggestion]):
    """Displays FileBot's proposed renames."""
    console = Console()
    if not suggestions:
        console.print("[green]✓ No renames needed.[/green]")
        return

    table = Table(box=box.SIMPLE_HEAVY)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Current Path")
    table.add_column("Proposed Path", style="green")
    for i, suggestion in enumerate(suggestions, 1):
        table.add_row(str(i), escape(suggestion.old_path), escape(suggestion.new_path))

    console.print(table)


def print_batch_result(result: BatchResult):
    """Displays the per-file outcome of a rename batch."""
    console = Console()

    table = Table(box=box.SIMPLE)
    table.add_column("", width=2)
    table.add_column("File")
    table.add_column("Result")
    for item in result.results:
        if item.success:
            table.add_row("[green]✓[/green]", escape(item.new_path), "[green]renamed[/green]")
        else:
            table.add_row("[red]✗[/red]", escape(item.old_path), f"[red]{escape(item.error or '')}[/red]")

    style = "green" if result.success else "yellow"
    console.print(
        Panel(
            table,
            title=f"[bold {style}]{escape(result.message)}[/bold {style}]",
            border_style=style,
        )
    )
