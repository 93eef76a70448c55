"""Application settings loaded from environment variables.

Lookup order for every value:
1. OS environment variables
2. The .env file named by MULTIBANK_ENV_FILE (relative to the project root)
3. config/.env.dev, then config/.env
4. Defaults below

Uses pydantic-settings for automatic type coercion and validation.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE_VARIABLE = "MULTIBANK_ENV_FILE"


def _find_project_root() -> Path:
    """Closest ancestor holding a config/ directory or pyproject.toml."""
    here = Path(__file__).resolve().parent
    for parent in [here, *here.parents]:
        if (parent / "config").is_dir() or (parent / "pyproject.toml").is_file():
            return parent
    return Path(__file__).resolve().parents[2]


def get_config_dir() -> Path:
    """Directory holding banks.csv and the .env files."""
    return _find_project_root() / "config"


def _resolve_env_file_path() -> Path | None:
    candidates = []

    explicit = os.environ.get(ENV_FILE_VARIABLE)
    if explicit:
        path = Path(explicit)
        candidates.append(path if path.is_absolute() else _find_project_root() / path)

    config_dir = get_config_dir()
    candidates += [config_dir / ".env.dev", config_dir / ".env"]

    return next((path for path in candidates if path.exists()), None)


class Settings(BaseSettings):
    """Endpoints, credentials and limits of the banking adapters."""

    model_config = SettingsConfigDict(
        env_file=_resolve_env_file_path(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # XS2A adapter gateway (speaks Berlin Group NextGenPSD2)
    xs2a_adapter_url: str = "http://localhost:8999"

    # Aggregator API
    aggregator_url: str = "https://sandbox.finapi.io"

    # HTTP transport, seconds
    http_timeout: float = 30.0

    # FinTS product registration number issued by Deutsche Kreditwirtschaft
    fints_product_id: str = ""

    # Bank directory CSV; empty means config/banks.csv
    bank_directory_csv: str = ""

    # Transaction reports
    pagination_max_pages: int = 50
    transactions_default_lookback_days: int = 365

    log_level: str = "INFO"

    @field_validator("pagination_max_pages", "transactions_default_lookback_days")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v < 1:
            msg = "must be at least 1"
            raise ValueError(msg)
        return v

    @property
    def bank_directory_path(self) -> Path:
        if self.bank_directory_csv:
            return Path(self.bank_directory_csv)
        return get_config_dir() / "banks.csv"


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for tests)."""
    get_settings.cache_clear()
