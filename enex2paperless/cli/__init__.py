"""Command-line tools for enex2paperless.

- ``enex2paperless`` / ``python -m enex2paperless.cli`` -- migrate an
  export (see :mod:`enex2paperless.cli.migrate`).
"""
