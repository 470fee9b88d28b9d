"""
validatebag -- Configuration System

All configuration is Pydantic-validated and loaded from:
1. default.yaml (defaults)
2. Environment variables (overrides, prefix VALIDATEBAG_, nested with "__")
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from validatebag.systems.validation.rules.ddm import normalize_license_uri

CONFIG_PATH_ENV = "VALIDATEBAG_CONFIG_PATH"
DEFAULT_CONFIG_PATH = "config/default.yaml"

# ─── Sub-configs ──────────────────────────────────────────────────


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 20180


class SchemaConfig(BaseModel):
    """XSD locations (path or URL). Loaded once at startup."""

    ddm: str = "https://easy.dans.knaw.nl/schemas/md/ddm/ddm.xsd"
    files: str = "https://easy.dans.knaw.nl/schemas/bag/metadata/files/files.xsd"
    # Optional schemas; their rules (3.3.1, 3.5.1) are left out when unset.
    agreements: str | None = None
    provenance: str | None = None
    timeout_s: float = 30.0


class BagStoreConfig(BaseModel):
    base_url: str = "http://localhost:20110"
    store_name: str = "pdbs"
    timeout_s: float = 10.0


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "console"  # "console" | "json"
    quiet_loggers: list[str] = Field(
        default_factory=lambda: ["httpx", "httpcore", "bagit", "uvicorn.access"]
    )


# ─── Root Config ──────────────────────────────────────────────────


class ValidateBagConfig(BaseSettings):
    """
    Root configuration. Loads from YAML, overridable by env vars.
    """

    model_config = SettingsConfigDict(
        env_prefix="VALIDATEBAG_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    version: str = "1.0.0"
    server: ServerConfig = Field(default_factory=ServerConfig)
    schemas: SchemaConfig = Field(default_factory=SchemaConfig)
    bag_store: BagStoreConfig = Field(default_factory=BagStoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    allowed_licenses: list[str] = Field(
        default_factory=lambda: ["http://creativecommons.org/publicdomain/zero/1.0"]
    )

    @field_validator("allowed_licenses")
    @classmethod
    def _normalize_licenses(cls, value: list[str]) -> list[str]:
        # The license rule compares normalised forms only.
        return [normalize_license_uri(uri.strip()) for uri in value if uri.strip()]


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_allowed_licenses(path: str | Path) -> list[str]:
    """One license URI per line; blank lines and ``#`` comments ignored."""
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip() and not line.lstrip().startswith("#")]


def load_config(config_path: str | Path | None = None) -> ValidateBagConfig:
    """
    Load configuration from YAML file, then apply environment variable overrides.

    A YAML key ``allowed_licenses_file`` (relative to the YAML file) is read
    as a license list and merged with any inline ``allowed_licenses``.
    """
    raw: dict[str, Any] = {}
    base_dir = Path.cwd()

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                raw = yaml.safe_load(f) or {}
            base_dir = path.parent

    if licenses_file := raw.pop("allowed_licenses_file", None):
        raw["allowed_licenses"] = [
            *raw.get("allowed_licenses", []),
            *load_allowed_licenses(base_dir / licenses_file),
        ]

    # Init kwargs beat env vars in pydantic-settings, so fold env values in
    # on top of the YAML explicitly.
    env_overrides = ValidateBagConfig().model_dump(exclude_defaults=True)

    return ValidateBagConfig(**_deep_merge(raw, env_overrides))
