"""Allow ``python -m enex2paperless.cli`` execution."""

from enex2paperless.cli.migrate import main

main()
