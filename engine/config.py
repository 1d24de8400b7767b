"""Settings for the ensure engine and release workflow."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnsureSettings(BaseSettings):
    """Environment driven settings, prefixed with ``VENDORPIN_``."""

    model_config = SettingsConfigDict(env_prefix="VENDORPIN_", populate_by_name=True)

    vendor_dir: Path = Path("./dependencies")
    git_host: str = "github.com"
    git_scheme: str = "https"
    github_api_url: str = "https://api.github.com"
    github_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("VENDORPIN_GITHUB_TOKEN", "GITHUB_TOKEN"),
    )
    # seconds allowed for a single clone, fetch or listing
    network_timeout: Optional[float] = Field(default=None, gt=0)
