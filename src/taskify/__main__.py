"""Allow `python -m taskify` as a shortcut for the CLI."""

from taskify.cli.main import main

main()
