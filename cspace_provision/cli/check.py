import pydantic
import typer

from cspace_provision.cli.common import ContextOption, MinimumVersionOption, load_config, with_verbosity_flags
from cspace_provision.const import GateDecision
from cspace_provision.error import ProvisionError
from cspace_provision.gate import VersionGate
from cspace_provision.log import stderr_console, stdout_console
from cspace_provision.util import auto_path


@with_verbosity_flags
def check(context: ContextOption = auto_path(), minimum_version: MinimumVersionOption = None) -> None:
    """Reports whether the installed Docker meets the minimum version, without installing anything

    Exits with code 0 if the requirement is met and 1 if Docker must be installed or upgraded.
    """
    try:
        config = load_config(context, minimum_version=minimum_version)
        report = VersionGate.from_config(config.model).check()
    except pydantic.ValidationError as e:
        stderr_console.print(f"❌ Invalid configuration:\n{e}", style="error")
        raise typer.Exit(code=1)
    except ProvisionError as e:
        stderr_console.print(f"❌ {e}", style="error")
        raise typer.Exit(code=1)

    stdout_console.print(f"Path: {report.path or 'not found'}", highlight=False)
    stdout_console.print(f"Version: {report.version or 'unknown'}", highlight=False)
    stdout_console.print(f"Minimum: {report.minimum}", highlight=False)
    stdout_console.print(f"Decision: {report.decision.value}", highlight=False)

    if report.decision != GateDecision.SATISFIES_MINIMUM:
        stderr_console.print("❌ Docker version requirement has not been met", style="error")
        raise typer.Exit(code=1)
    stderr_console.print("✅ Docker version requirement has been met", style="success")
