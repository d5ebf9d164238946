import typer

from cspace_provision import __version__
from cspace_provision.log import stdout_console


def version():
    """Display the version of cspace-provision"""
    stdout_console.print(f"cspace-provision v{__version__}", highlight=False)
    raise typer.Exit()
