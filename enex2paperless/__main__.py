"""Allow ``python -m enex2paperless`` execution."""

from enex2paperless.cli.migrate import main

main()
