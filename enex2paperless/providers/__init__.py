"""Concrete adapters for the interfaces in :mod:`enex2paperless.interfaces`."""
