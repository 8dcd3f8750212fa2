"""
Centralized cnstack configuration.

All fields can be set via ``CNS_*`` environment variables (e.g.
``CNS_BUNDLE_FAIL_FAST=true``) or through a ``.env`` file.

Example::

    from cnstack.core.settings import get_settings

    settings = get_settings()
    options = MakeOptions.from_settings(settings)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CnsSettings(BaseSettings):
    """cnstack runtime configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CNS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: Literal["console", "json"] = Field(default="console")

    # ── Recipe ───────────────────────────────────────────────────
    recipe_data_file: Path | None = Field(
        default=None,
        description="Override of the packaged recipe data set",
    )
    payload_version: str = Field(default="v1")

    # ── Bundling ─────────────────────────────────────────────────
    bundle_output_dir: str = Field(default=".")
    bundle_mode: Literal["sequential", "parallel"] = Field(default="parallel")
    bundle_fail_fast: bool = Field(default=False)
    bundle_types: str = Field(default="", description="Comma-separated bundler types")
    bundle_version: str = Field(default="dev")
    include_readme: bool = Field(default=True)
    include_checksums: bool = Field(default=True)

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level

    @property
    def bundle_type_list(self) -> list[str]:
        """Selected bundler types, empty meaning all."""
        return [t.strip() for t in self.bundle_types.split(",") if t.strip()]


_settings_cache: dict[str, CnsSettings] = {}


def get_settings(*, _force_reload: bool = False) -> CnsSettings:
    """Load, validate, and cache a :class:`CnsSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = CnsSettings()
    _settings_cache["default"] = settings
    return settings


def reset_settings() -> None:
    """Drop the cached settings (for tests)."""
    _settings_cache.clear()


__all__ = ["CnsSettings", "get_settings", "reset_settings"]
