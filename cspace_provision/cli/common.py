import functools
import inspect
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from cspace_provision.config import ProvisionConfig
from cspace_provision.log import init_logging, log_level_from_flags

log = logging.getLogger(__name__)

ContextOption = Annotated[
    Path,
    typer.Option(
        exists=True,
        file_okay=True,
        dir_okay=True,
        readable=True,
        resolve_path=True,
        help="The project directory or configuration file. Defaults to the current working directory where invoked.",
    ),
]
MinimumVersionOption = Annotated[
    Optional[str],
    typer.Option(
        show_default=False,
        help="Minimum required Docker version, e.g. 1.2.0. Overrides the configuration file.",
        rich_help_panel="Version Check",
    ),
]
NoSudoOption = Annotated[
    Optional[bool],
    typer.Option(
        "--no-sudo",
        help="Run Docker and the installer without sudo. Overrides the configuration file.",
    ),
]

_VERBOSE_ANNOTATION = Annotated[Optional[bool], typer.Option("--verbose", "-v", help="Enable debug logging")]
_QUIET_ANNOTATION = Annotated[Optional[bool], typer.Option("--quiet", "-q", help="Supress all output except errors")]


def with_verbosity_flags(fn):
    @functools.wraps(fn)
    def wrapper(*args, verbose: _VERBOSE_ANNOTATION = False, quiet: _QUIET_ANNOTATION = False, **kwargs):
        try:
            log_level = log_level_from_flags(verbose, quiet)
        except ValueError as e:
            raise typer.BadParameter(str(e))

        init_logging(log_level)
        return fn(*args, **kwargs)

    # Update signature with verbosity flags
    sig = inspect.signature(wrapper)
    params = list(sig.parameters.values())
    params.extend(
        [
            inspect.Parameter("verbose", inspect.Parameter.KEYWORD_ONLY, default=False, annotation=_VERBOSE_ANNOTATION),
            inspect.Parameter("quiet", inspect.Parameter.KEYWORD_ONLY, default=False, annotation=_QUIET_ANNOTATION),
        ]
    )
    sig = sig.replace(parameters=params)
    wrapper.__signature__ = sig

    return wrapper


def load_config(context: Path, minimum_version: str | None = None, use_sudo: bool | None = None) -> ProvisionConfig:
    """Load the project configuration and apply command line overrides."""
    config = ProvisionConfig.from_context(context)
    config.override(minimum_version=minimum_version, use_sudo=use_sudo)
    return config
