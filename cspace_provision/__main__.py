from cspace_provision.cli.main import app

app()
