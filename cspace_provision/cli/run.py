import logging
from typing import Annotated, Optional

import pydantic
import typer

from cspace_provision.cli.common import ContextOption, MinimumVersionOption, NoSudoOption, load_config, with_verbosity_flags
from cspace_provision.error import ProvisionError
from cspace_provision.image import ImageBuildBackend
from cspace_provision.log import stderr_console
from cspace_provision.provision import Provisioner
from cspace_provision.util import auto_path

log = logging.getLogger(__name__)


@with_verbosity_flags
def run(
    context: ContextOption = auto_path(),
    minimum_version: MinimumVersionOption = None,
    no_sudo: NoSudoOption = False,
    skip_gate: Annotated[
        Optional[bool],
        typer.Option(
            "--skip-gate",
            help="Use the Docker found on the PATH without checking its version or installing it.",
            rich_help_panel="Version Check",
        ),
    ] = False,
    backend: Annotated[
        Optional[ImageBuildBackend],
        typer.Option(
            case_sensitive=False,
            help="The builder to use. 'legacy' works with every Docker release, 'buildx' requires Docker Buildx.",
            rich_help_panel="Build Configuration",
        ),
    ] = ImageBuildBackend.LEGACY,
    cache: Annotated[
        Optional[bool],
        typer.Option(help="Enable layer caching for image builds.", rich_help_panel="Build Configuration"),
    ] = True,
    pull: Annotated[
        Optional[bool],
        typer.Option(help="Always attempt to pull newer base images.", rich_help_panel="Build Configuration"),
    ] = False,
) -> None:
    """Checks the Docker version, installs or upgrades Docker if needed, then builds every image stage in order

    Stages are built sequentially so that each image can be layered on the one before it. The first failure stops
    the sequence; images built before it are kept.
    """
    try:
        config = load_config(context, minimum_version=minimum_version, use_sudo=False if no_sudo else None)
        built = Provisioner(config).run(skip_gate=skip_gate, cache=cache, pull=pull, backend=backend)
    except pydantic.ValidationError as e:
        stderr_console.print(f"❌ Invalid configuration:\n{e}", style="error")
        raise typer.Exit(code=1)
    except ProvisionError as e:
        stderr_console.print(f"❌ {e}", style="error")
        raise typer.Exit(code=1)

    stderr_console.print(f"✅ Provisioning completed, built {len(built)} image(s)", style="success")
