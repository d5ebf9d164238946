import typer

from cspace_provision.cli import check, render, run, version
from cspace_provision.const import APP_NAME

app = typer.Typer(
    name=APP_NAME,
    no_args_is_help=True,
    rich_markup_mode="markdown",
    help="A tool for provisioning a CollectionSpace server as a sequence of Docker images",
)

app.command(
    name="run",
    help="Check or install Docker, then build every image stage (aliases: provision)",
    rich_help_panel="Provisioning",
)(run.run)
app.command(name="provision", hidden=True)(run.run)

app.command(
    name="check",
    help="Check the installed Docker against the minimum version",
    rich_help_panel="Provisioning",
)(check.check)

app.command(
    name="render",
    help="Render stage build-file templates without building",
    rich_help_panel="Provisioning",
)(render.render)

app.command(name="version", help="Show the cspace-provision version")(version.version)
