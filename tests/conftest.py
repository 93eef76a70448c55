"""Root pytest configuration.

Test Structure:
    tests/
    └── multibank/
        └── unit/              # Fast, isolated tests (no bank access)
            ├── domain/
            ├── application/
            ├── infrastructure/
            └── config/

Settings are read from config/.env.dev or config/.env when present, the
same files local development uses.
"""

from pathlib import Path

import pytest
from dotenv import load_dotenv

from multibank_config import clear_settings_cache

PROJECT_ROOT = Path(__file__).resolve().parents[1]

CONFIG_DIR = PROJECT_ROOT / "config"
if (CONFIG_DIR / ".env.dev").exists():
    load_dotenv(CONFIG_DIR / ".env.dev")
elif (CONFIG_DIR / ".env").exists():
    load_dotenv(CONFIG_DIR / ".env")


@pytest.fixture(autouse=True)
def fresh_settings():
    """Reload settings for every test so env overrides do not leak."""
    clear_settings_cache()
    yield
    clear_settings_cache()
