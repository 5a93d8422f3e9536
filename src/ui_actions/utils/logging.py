"""
Rich-formatted logging for ui_actions.

Provides three verbosity levels:
- Normal: warnings and errors only, rich-formatted
- Verbose (--verbose): lifecycle transitions and executed actions
- Debug (--debug): low-level DEBUG messages, unformatted

Usage:
    from ui_actions.utils.logging import setup_logging

    setup_logging(verbose=args.verbose, debug=args.debug)
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

# Reduce noise from third-party libraries
NOISY_LOGGERS = [
    "urllib3",
    "urllib3.connectionpool",
    "requests",
    "llama_cpp",
    "filelock",
]

_console: Console | None = None


def get_console() -> Console:
    """Get the shared stderr console used for log output."""
    global _console
    if _console is None:
        _console = Console(stderr=True)
    return _console


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """
    Configure the root logger.

    Args:
        verbose: Show INFO messages (state transitions, actions)
        debug: Show DEBUG messages with a plain, unformatted layout
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    if debug:
        logging.basicConfig(
            level=level,
            format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
            datefmt="%H:%M:%S",
            force=True,
        )
    else:
        logging.basicConfig(
            level=level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(
                console=get_console(),
                show_path=False,
                rich_tracebacks=True,
                tracebacks_show_locals=verbose,
                markup=False,
            )],
            force=True,
        )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING if not debug else logging.INFO)
