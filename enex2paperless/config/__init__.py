"""Configuration module - exports Settings, load_config and validate_settings.

There is deliberately no module-level settings singleton: the CLI loads one
:class:`Settings` per run and passes it down explicitly.
"""

from enex2paperless.config.loader import load_config, validate_settings
from enex2paperless.config.settings import Settings

__all__ = ["Settings", "load_config", "validate_settings"]
