"""Migrate Evernote ENEX exports into Paperless-NGX."""

__version__ = "0.1.0"
