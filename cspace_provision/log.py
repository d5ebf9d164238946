import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

default_theme = Theme(
    {
        "info": "bright_blue",
        "error": "bright_red",
        "success": "green3",
        "quiet": "bright_black",
    }
)

stdout_console = Console(theme=default_theme)
stderr_console = Console(stderr=True, theme=default_theme)


# Libraries whose own logging is only useful when debugging a provisioning run.
NOISY_LOGGERS = ["urllib3", "python_on_whales"]


def init_logging(log_level: str | int = logging.INFO) -> None:
    """Initialize logging for the provisioning CLI

    Messages often carry raw output from apt-get, the bootstrap script or docker, so rich markup is disabled. Source
    locations and third-party library logs are only shown at DEBUG.

    :param log_level: The log level to use
    """
    debug = log_level in (logging.DEBUG, "DEBUG")

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=stderr_console,
                markup=False,
                show_path=debug,
                rich_tracebacks=True,
                tracebacks_suppress=[typer],
                tracebacks_max_frames=20 if debug else 0,
                tracebacks_show_locals=debug,
            ),
        ],
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)


def log_level_from_flags(verbose: bool = False, quiet: bool = False) -> int:
    """Map the CLI verbosity flags to a log level

    :param verbose: Enable debug output
    :param quiet: Suppress all output except errors

    :raises ValueError: If both flags are set
    """
    if verbose and quiet:
        raise ValueError("Cannot set both --verbose and --quiet flags.")
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.ERROR
    return logging.INFO
