from .kindergarten import cli

cli()
