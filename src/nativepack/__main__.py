from nativepack.cli import cli

cli()
