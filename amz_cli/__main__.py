"""
Main entry point for the amz-cli application.
Runs the typer app and turns escaping errors into exit statuses.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from amz_cli.cli.app import app
from amz_cli.cli.formatters import format_error_with_suggestions
from amz_cli.exceptions import AmzCliError, ExitStatus


def _silence_stdout() -> None:
    # Python flushes stdout again at exit; point it somewhere harmless.
    devnull = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull, sys.stdout.fileno())


def main() -> None:
    """Main entry point function."""
    if os.name == "nt":
        try:
            sys.stdout.reconfigure(encoding="utf-8")
            sys.stderr.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError):
            pass

    log = logging.getLogger("amz_cli")
    stderr = Console(stderr=True)

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        stderr.print("\n[yellow]⚠️  Operation cancelled by user.[/yellow]")
        sys.exit(130)
    except BrokenPipeError:
        # e.g. `amz-cli --xml purchase.amz | head`
        _silence_stdout()
        sys.exit(int(ExitStatus.ERROR))
    except MemoryError:
        raise
    except AmzCliError as e:
        stderr.print(f"\n{format_error_with_suggestions(e)}")
        sys.exit(int(e.status))
    except Exception as e:
        stderr.print(f"\n{format_error_with_suggestions(e, {'type': 'Unexpected'})}")
        log.debug("Full traceback:", exc_info=True)
        sys.exit(int(ExitStatus.ERROR))


if __name__ == "__main__":
    main()
