"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ──────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config.yaml        - optional file next to the export
#   2. .env file          - local overrides (not committed)
#   3. E2P_* env vars     - set by the shell / container
#   4. CLI overrides      - flags such as --outputfolder and --unzip
#
# YAML keys may be written either as field names (paperless_api) or in
# the compact form used by older config files (paperlessapi, filetypes).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml
from pydantic import ValidationError

from enex2paperless.config.settings import Settings
from enex2paperless.utils.errors import ConfigurationError
from enex2paperless.utils.logging import get_logger

_logger = get_logger(__name__)

# "paperlessapi" -> "paperless_api", "filetypes" -> "file_types", ...
_COMPACT_KEYS: dict[str, str] = {
    name.replace("_", ""): name for name in Settings.model_fields
}


def load_config(path: str | Path = "config.yaml", **overrides: Any) -> Settings:
    """Load YAML config, layer environment and CLI overrides, and validate.

    Args:
        path: Path to the YAML configuration file.  A missing file is not
              an error; everything can come from the environment.
        **overrides: Explicit values (usually CLI flags).  ``None`` values
                     are ignored so unset flags don't clobber config.

    Returns:
        A validated :class:`Settings` instance.

    Raises:
        ConfigurationError: If the merged configuration is unusable.
    """
    yaml_config = _read_yaml(Path(path))

    try:
        env_settings = Settings()
    except ValidationError as exc:
        raise ConfigurationError(f"configuration error: {exc}") from exc

    # Only values actually supplied via env/.env may override the YAML file;
    # bare field defaults must not.
    env_overrides = {
        name: getattr(env_settings, name) for name in env_settings.model_fields_set
    }

    merged: dict[str, Any] = {**yaml_config, **env_overrides}
    merged.update({key: value for key, value in overrides.items() if value is not None})

    try:
        settings = Settings(**merged)
    except ValidationError as exc:
        raise ConfigurationError(f"configuration error: {exc}") from exc

    validate_settings(settings)
    _logger.debug("configuration_loaded", settings=repr(settings))
    return settings


def validate_settings(settings: Settings) -> None:
    """Check cross-field rules that pydantic field types can't express.

    Raises:
        ConfigurationError: With a message naming the offending setting.
    """
    if settings.username and not settings.password:
        raise ConfigurationError("if using username, password is required too")
    if settings.password and not settings.username:
        raise ConfigurationError("if using password, username is required too")

    if not settings.file_types:
        raise ConfigurationError("field file_types: required validation failed")

    # Disk-only runs never talk to Paperless, so they need no API settings.
    if not settings.upload_enabled:
        return

    parsed = urlparse(settings.paperless_api)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError("field paperless_api: http_url validation failed")

    if not settings.token and not settings.username:
        raise ConfigurationError("bad auth config: need either token or username/password")


def _read_yaml(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        _logger.debug("config_file_not_found", path=str(config_path))
        return {}

    with open(config_path, encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"couldn't read config file {config_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(f"config file {config_path} must contain a mapping")

    normalized: dict[str, Any] = {}
    for key, value in raw.items():
        compact = str(key).lower().replace("_", "").replace("-", "")
        field_name = _COMPACT_KEYS.get(compact)
        if field_name is None:
            _logger.debug("config_key_ignored", key=key)
            continue
        normalized[field_name] = value
    return normalized
