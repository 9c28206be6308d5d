from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# .env file is in the repository root (parent of src/)
# Optional; environment variables alone are enough
# Path: core/config.py -> herdmetrics -> src -> repository root -> .env
_ENV_FILE = Path(__file__).parent.parent.parent.parent / ".env"
_ENV_FILE = _ENV_FILE if _ENV_FILE.exists() else None


@lru_cache
def get_cache_dir() -> Path:
    """Get the cache directory (.cache/ in workspace root).

    Looks for project root by finding .git or pyproject.toml,
    then returns .cache/ within that root.
    """
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / ".git").exists() or (parent / "pyproject.toml").exists():
            cache_dir = parent / ".cache"
            cache_dir.mkdir(exist_ok=True)
            return cache_dir
    # Fallback to current working directory
    cache_dir = Path.cwd() / ".cache"
    cache_dir.mkdir(exist_ok=True)
    return cache_dir


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        env_prefix="HERDMETRICS_",
        extra="ignore",
    )

    # Animals born before this date are left out of DEP baselines and
    # weight KPIs (the surviving pre-cutoff herd is a biased sample)
    reference_period_start: date = date(2025, 1, 1)

    # Minimum age for a female to count as exposed in the manual fallback
    breeding_age_months: int = 18

    # Display units for CLI output ("imperial" = lb, "metric" = kg)
    # Note: all calculations use kilograms internally
    display_units: Literal["imperial", "metric"] = "metric"

    # Remote herd snapshot (JSON export) fetched by `herdmetrics fetch`
    snapshot_url: str | None = None
    snapshot_timeout: float = 30.0

    log_level: str = "WARNING"


settings = Settings()
