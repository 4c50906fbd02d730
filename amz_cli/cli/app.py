"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from amz_cli import __version__
from amz_cli.core.download_manager import DownloadManager
from amz_cli.exceptions import ExitStatus
from amz_cli.media.transport import HttpTransport
from amz_cli.models.config import DownloadConfig
from amz_cli.models.stats import DownloadStats
from amz_cli.storage.config_manager import ConfigManager
from amz_cli.storage.side_files import SideFiles
from amz_cli.utils.environment import load_user_dirs

from .formatters import print_config, print_output_template_help, print_summary_panel
from .progress_manager import ProgressManager

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
log = logging.getLogger("amz_cli")

app = typer.Typer(
    name="amz-cli",
    help=(
        "Download the music listed in Amazon MP3 (.amz) purchase files."
        " Use '-' to read a file from standard input."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME") or "~/.config")
    return base_dir.expanduser() / "amz-cli"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


async def run_downloads(
    config: DownloadConfig, files: list[str], config_dir: Path
) -> tuple[ExitStatus, DownloadStats]:
    """Downloads every manifest in `files`, one track at a time."""
    side_files = SideFiles(config_dir)
    async with ProgressManager(
        console=console, disabled=config.quiet or config.print_only
    ) as progress_manager:
        async with HttpTransport(cookie_file=config_dir / "cookies") as transport:
            manager = DownloadManager(config, transport, progress_manager, side_files)
            status = await manager.run_files(files)
    return status, manager.stats


@app.command()
def main(
    files: Optional[list[str]] = typer.Argument(  # noqa: B008
        None, help="The .amz files to download; '-' reads standard input."
    ),
    # --- Naming Options ---
    name_format: Optional[str] = typer.Option(
        None,
        "-o",
        "--output",
        help="Name format for output files. See --output-help for variables.",
    ),
    output_dir: Optional[str] = typer.Option(
        None, "-d", "--output-dir", help="Directory in which to store files."
    ),
    default_output_dir: Optional[str] = typer.Option(
        None,
        "--default-output-dir",
        help="Directory to use if none is set in the configuration file.",
    ),
    allow_chars: str = typer.Option(
        "", "--allow-chars", help="Allow the given characters in file names."
    ),
    forbid_chars: str = typer.Option(
        "", "--forbid-chars", help="Replace the given characters in file names."
    ),
    allow_uppercase: Optional[bool] = typer.Option(
        None,
        "--allow-uppercase/--forbid-uppercase",
        help="Keep or lowercase capital letters in file names.",
    ),
    allow_utf8: Optional[bool] = typer.Option(
        None,
        "--utf8-filenames/--ascii-filenames",
        help="Keep or replace non-ASCII characters in file names.",
    ),
    # --- Download Options ---
    resume: bool = typer.Option(
        False, "-r", "--resume", help="Resume partial downloads instead of renaming."
    ),
    max_attempts: Optional[int] = typer.Option(
        None, "--max-attempts", help="How many times to try each track."
    ),
    # --- Output Modes ---
    info: bool = typer.Option(
        False, "-i", "--info", help="Show file information without downloading."
    ),
    xml: bool = typer.Option(
        False, "-x", "--xml", help="Show the decoded XML without downloading."
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Show file information while downloading (-vv for debug logs).",
    ),
    quiet: bool = typer.Option(
        False, "-q", "--quiet", help="Only report errors; no progress display."
    ),
    # --- Utility Options ---
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    output_help: bool = typer.Option(
        False,
        "--output-help",
        help="Show detailed help for the name format and exit.",
        is_eager=True,
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration and exit."
    ),
):
    """Download music from Amazon MP3 purchase files."""
    if output_help:
        print_output_template_help()
        raise typer.Exit()

    if version:
        console.print(f"[bold]amz-cli[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if quiet:
        log_level = "WARNING"
    elif verbose >= 2:
        log_level = "DEBUG"
    log.setLevel(log_level)

    load_user_dirs()
    config_manager = ConfigManager(CONFIG_FILE)

    if show_config:
        config_manager.load_config()
        print_config(CONFIG_FILE, config_manager.get_display_dict())
        raise typer.Exit()

    if not files:
        console.print(
            "[red]✗ No input files.[/red] Use: [cyan]amz-cli [OPTIONS] FILES...[/cyan]"
        )
        raise typer.Exit(code=int(ExitStatus.ERROR))

    cli_options: dict[str, Any] = {
        key: value
        for key, value in {
            "name_format": name_format,
            "output_dir": output_dir,
            "allow_uppercase": allow_uppercase,
            "allow_utf8": allow_utf8,
            "max_attempts": max_attempts,
        }.items()
        if value is not None
    }
    if resume:
        cli_options["resume"] = True
    cli_options.update(
        print_only=info or xml, print_xml=xml, verbose=verbose > 0, quiet=quiet
    )

    config = config_manager.load_config(
        cli_options,
        forbid_chars=forbid_chars,
        allow_chars=allow_chars,
        default_output_dir=default_output_dir,
    )
    log.debug(f"Loaded configuration: {escape(repr(config))}")

    status, stats = asyncio.run(run_downloads(config, files, CONFIG_DIR))

    if not config.quiet and not config.print_only:
        print_summary_panel(stats)

    raise typer.Exit(code=int(status))
