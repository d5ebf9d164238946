import pydantic
import typer

from cspace_provision.cli.common import ContextOption, load_config, with_verbosity_flags
from cspace_provision.error import ProvisionError
from cspace_provision.log import stderr_console, stdout_console
from cspace_provision.provision import Provisioner
from cspace_provision.util import auto_path


@with_verbosity_flags
def render(context: ContextOption = auto_path()) -> None:
    """Renders the build-file template of every stage with its configured values"""
    try:
        config = load_config(context)
        rendered = Provisioner(config).render()
    except pydantic.ValidationError as e:
        stderr_console.print(f"❌ Invalid configuration:\n{e}", style="error")
        raise typer.Exit(code=1)
    except ProvisionError as e:
        stderr_console.print(f"❌ {e}", style="error")
        raise typer.Exit(code=1)

    for path in rendered:
        stdout_console.print(str(path), highlight=False, soft_wrap=True)
    stderr_console.print(f"✅ Rendered {len(rendered)} template(s)", style="success")
