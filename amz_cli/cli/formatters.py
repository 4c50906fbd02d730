"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from amz_cli.models.playlist import (
    PLAYLIST_META_LABELS,
    TRACK_META_LABELS,
    MetaEntry,
    Playlist,
    Track,
)
from amz_cli.models.stats import DownloadStats
from amz_cli.utils.formatting import format_duration, format_size, format_track_length
from amz_cli.utils.template import VARIABLES


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Check the values in your configuration file (see --show-config).",
            "• Delete the file to have it recreated with defaults.",
        ],
        "InvalidEncodingError": [
            "• The file does not look like an .amz file.",
            "• Make sure the download was not truncated or altered.",
        ],
        "ManifestParseError": [
            "• The .amz file could not be parsed. Try downloading it again.",
            "• Run with --xml to inspect the decoded contents.",
        ],
        "UnterminatedReferenceError": [
            "• Every '${' in a name format needs a closing '}'.",
            "• Run `amz-cli --output-help` for the template syntax.",
        ],
        "InvalidConditionalError": [
            "• Only '${VAR:-text}' and '${VAR:+text}' are supported.",
            "• Run `amz-cli --output-help` for the template syntax.",
        ],
        "SideFileError": [
            "• Check the permissions of your configuration directory.",
            "• Make sure the disk is not full.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

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
    """Displays the settings read from the configuration file."""
    console = Console()
    content = "\n".join(f"{key} = {value}" for key, value in config_data.items())
    console.print(
        Panel(
            escape(content),
            title=f"Configuration ([dim]{escape(str(config_path))}[/dim])",
            border_style="cyan",
        )
    )


def _meta_lines(
    entries: list[MetaEntry], labels: dict[str, str], bullet: str, width: int
) -> list[str]:
    lines = []
    for meta in entries:
        label = labels.get(meta.urn or "")
        if label:
            lines.append(f"{bullet} {label + ':':<{width}}{meta.value or ''}")
        else:
            lines.append(f"{bullet} '{meta.urn}' = {meta.value or ''}")
    return lines


def print_playlist_info(console: Console, playlist: Playlist, filename: str):
    """Prints the playlist-level fields of a manifest."""
    lines = [f"Playlist: {filename}"]
    for label, value in (
        ("Title", playlist.title),
        ("Creator", playlist.creator),
        ("Image", playlist.image_name),
    ):
        if value:
            lines.append(f"* {label + ':':<10}{value}")
    lines += _meta_lines(playlist.meta, PLAYLIST_META_LABELS, "*", 10)
    console.print(escape("\n".join(lines)), highlight=False)


def print_track_info(console: Console, track: Track, number: int):
    """Prints every field of one track, numbered from 1."""
    length = format_track_length(track.duration)
    duration = f"{track.duration} ({length})" if length else track.duration

    lines = ["", f"  Track {number}:"]
    for label, value in (
        ("URL", track.location),
        ("Title", track.title),
        ("Creator", track.creator),
        ("Album", track.album),
        ("Image", track.image_name),
        ("Duration", duration),
        ("Track Number", track.track_num),
    ):
        if value:
            lines.append(f"  - {label + ':':<15}{value}")
    lines += _meta_lines(track.meta, TRACK_META_LABELS, "  -", 15)
    console.print(escape("\n".join(lines)), highlight=False)


def print_summary_panel(stats: DownloadStats, duration_s: Optional[float] = None):
    """Displays the final summary of the download session."""
    console = Console(stderr=True)
    duration_s = stats.elapsed if duration_s is None else duration_s

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row(
        "✓ Downloaded:", f"[bold green]{stats.tracks_downloaded}[/bold green]"
    )
    if stats.tracks_renamed > 0:
        stats_table.add_row("○ Renamed:", f"[yellow]{stats.tracks_renamed}[/yellow]")
    if stats.tracks_failed > 0:
        stats_table.add_row("✗ Failed:", f"[bold red]{stats.tracks_failed}[/bold red]")

    stats_table.add_row("", "")  # Spacer

    stats_table.add_row(
        "Total Size:", f"[cyan]{format_size(stats.total_size_downloaded)}[/cyan]"
    )
    avg_speed = stats.total_size_downloaded / duration_s if duration_s > 0 else 0
    stats_table.add_row(
        "Avg. Speed:", f"[magenta]{format_size(int(avg_speed))}/s[/magenta]"
    )
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    ok = stats.manifests_succeeded == stats.manifests_total
    console.print()
    console.print(
        Panel(
            stats_table,
            title=(
                f"[bold]{stats.manifests_succeeded} of {stats.manifests_total} "
                "AMZ files downloaded successfully[/bold]"
            ),
            border_style="green" if ok else "red",
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()


VARIABLE_HELP = {
    "title": "Title of the track.",
    "creator": "Artist of the track.",
    "album": "Album the track belongs to.",
    "tracknum": "Track number, at least two digits.",
    "album_artist": "Primary artist of the album.",
    "genre": "Primary genre of the track.",
    "discnum": "Disc number.",
    "suffix": "File type suffix of the track.",
    "asin": "Amazon identifier of the track.",
    "album_asin": "Amazon identifier of the album.",
    "amz_title": "Title of the .amz playlist.",
    "amz_creator": "Creator of the .amz playlist.",
    "amz_asin": "Amazon identifier of the playlist.",
    "amz_genre": "Primary genre of the playlist.",
}


def print_output_template_help():
    """Displays a detailed help panel for file name templates."""
    console = Console()

    main_panel = Panel(
        Text(
            "Construct file names using variables. Track variables are"
            " sanitized to be safe for file names; any other variable is read"
            " from the environment unchanged.",
            justify="center",
        ),
        title="[bold]Name Format Guide[/bold]",
        border_style="cyan",
        padding=(1, 2),
    )

    var_table = Table(
        box=box.ROUNDED, title="[bold]Variable Reference[/bold]", title_style=""
    )
    var_table.add_column("Variable", style="bold magenta", no_wrap=True)
    var_table.add_column("Description")
    var_table.add_column("If missing")
    for name, (_, default) in VARIABLES.items():
        var_table.add_row(
            escape(f"${{{name}}}"),
            VARIABLE_HELP.get(name, ""),
            f"'{default}'" if default else "[dim](empty)[/dim]",
        )

    cond_grid = Table.grid(expand=True, padding=(0, 1))
    cond_grid.add_row("[bold cyan]${VAR}, $VAR:[/bold cyan]", "The value of VAR.")
    cond_grid.add_row(
        escape("${VAR:-text}"),
        "The value of VAR if set and non-empty, otherwise 'text'.",
    )
    cond_grid.add_row(
        escape("${VAR:+text}"),
        "'text' if VAR is set and non-empty, otherwise nothing.",
    )
    cond_grid.add_row()
    cond_grid.add_row(
        "[bold]Example:[/bold]",
        escape("${album_artist}/${album}/${discnum:+Disc ${discnum}/}${tracknum} - ${title}.${suffix}"),
    )

    cond_panel = Panel(
        cond_grid,
        title="[bold]Substitution Syntax[/bold]",
        border_style="green",
        padding=(1, 2),
    )

    console.print(main_panel)
    console.print(var_table)
    console.print(cond_panel)
