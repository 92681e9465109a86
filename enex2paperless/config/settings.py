"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# pydantic-settings reads configuration from (in priority order):
#
#   1. Keyword arguments         - CLI flags passed by load_config()
#   2. Environment variables     - E2P_PAPERLESS_API=http://paperless:8000
#   3. .env file                 - key=value lines in the working directory
#   4. Field defaults below
#
# config.yaml sits underneath all of these; see loader.py.
#
# List fields (file_types, additional_tags) accept either a real list or a
# single string separated by spaces or commas, so
#   E2P_FILE_TYPES="pdf jpeg png"
# works the same way as the YAML list form.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import re
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

_LIST_SPLIT_RE = re.compile(r"[\s,]+")


class Settings(BaseSettings):
    """enex2paperless settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(
        env_prefix="E2P_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Paperless-NGX ===
    paperless_api: str = ""
    # Token auth wins over basic auth when both are configured.
    token: str = ""
    username: str = ""
    password: str = ""
    http_timeout: float = 10.0

    # === Processing ===
    # Admission list: subtype tokens ("pdf", "jpeg", "txt") or "any".
    file_types: Annotated[list[str], NoDecode] = ["pdf"]
    # Non-empty -> write attachments to disk instead of uploading.
    output_folder: str = ""
    # Merged onto every note's own tags.
    additional_tags: Annotated[list[str], NoDecode] = []
    unzip: bool = False

    @field_validator("file_types", "additional_tags", mode="before")
    @classmethod
    def _split_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [part for part in _LIST_SPLIT_RE.split(value.strip()) if part]
        return value

    @property
    def upload_enabled(self) -> bool:
        """True when attachments go to Paperless rather than to disk."""
        return not self.output_folder

    @property
    def uses_token_auth(self) -> bool:
        """True when a token is set; it takes precedence over basic auth."""
        return bool(self.token)

    def __repr_args__(self):  # noqa: ANN204
        # Keep credentials out of debug logs.
        for key, value in super().__repr_args__():
            if key in ("token", "password") and value:
                yield key, "***"
            else:
                yield key, value
