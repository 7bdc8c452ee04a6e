"""Utility functions for the command line."""
import logging

from rich.console import Console
from rich.logging import RichHandler

from calendar_feed.fetch import FeedFetchError, load_feed_source

console = Console()
err_console = Console(stderr=True)


def configure_logging(verbose: bool = False) -> None:
    """Route package logging through rich.

    Args:
        verbose: Show debug output instead of warnings only.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def read_feed_or_exit(source: str) -> str:
    """Read feed text from a file or URL.

    Args:
        source: Local .ics path or feed URL

    Returns:
        The feed text

    Raises:
        SystemExit: If the source can't be read
    """
    try:
        return load_feed_source(source)
    except FeedFetchError as e:
        err_console.print(f"[red]Error:[/red] could not refresh calendar: {e}")
        raise SystemExit(1)
    except FileNotFoundError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)
