"""Herd snapshot loading.

A snapshot is one JSON export of the herd: the animal collection plus the
breeding-season records. The analytics engine treats a loaded snapshot as
immutable; a newer export is loaded as a new snapshot and recomputed from
scratch.

Accepted layouts:
- {"animals": [...], "breedingSeasons": [...], "exportedAt": "..."}
- a bare list of animal records
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from herdmetrics.core import get_cache_dir, http_get_with_retry, settings
from herdmetrics.data.models import Animal, BreedingSeason, Sex, unique_animals

logger = logging.getLogger(__name__)

# Default cache file name
DEFAULT_SNAPSHOT_FILE = "herd_snapshot.json"


class SnapshotError(Exception):
    """Raised when a snapshot file is not a herd export."""

    pass


@dataclass
class HerdSnapshot:
    animals: list[Animal] = field(default_factory=list)
    breeding_seasons: list[BreedingSeason] = field(default_factory=list)
    exported_at: str | None = None
    source: str | None = None


def default_snapshot_path() -> Path:
    """Path of the cached snapshot written by `herdmetrics fetch`."""
    return get_cache_dir() / DEFAULT_SNAPSHOT_FILE


def parse_snapshot(data, source: str | None = None) -> HerdSnapshot:
    """Build a HerdSnapshot from decoded JSON.

    Raises:
        SnapshotError: If the payload has neither an animal list nor is one
    """
    if isinstance(data, list):
        raw_animals, raw_seasons, exported_at = data, [], None
    elif isinstance(data, dict) and isinstance(data.get("animals"), list):
        raw_animals = data["animals"]
        raw_seasons = data.get("breedingSeasons") or data.get("breeding_seasons") or []
        exported_at = data.get("exportedAt") or data.get("exported_at")
    else:
        raise SnapshotError(f"Not a herd snapshot: {source or 'payload'} has no animal list")

    parsed = [Animal.from_dict(a) for a in raw_animals if isinstance(a, dict)]
    seasons = [BreedingSeason.from_dict(s) for s in raw_seasons if isinstance(s, dict)]

    skipped = len(raw_animals) - len(parsed)
    if skipped:
        logger.warning("Skipped %d non-object animal records in %s", skipped, source or "snapshot")
    animals = unique_animals(parsed)

    unknown_sex = sum(1 for a in animals if a.sex == Sex.UNKNOWN)
    if unknown_sex:
        logger.warning("%d animals have no recognized sex; they are left out of sex-specific counts", unknown_sex)
    logger.info("Loaded %d animals and %d breeding seasons", len(animals), len(seasons))

    return HerdSnapshot(animals=animals, breeding_seasons=seasons, exported_at=exported_at, source=source)


def load_snapshot(path: Path | None = None) -> HerdSnapshot:
    """Load a snapshot file (defaults to the cached snapshot).

    Raises:
        FileNotFoundError: If the file does not exist
        SnapshotError: If the file is not valid JSON or not a herd export
    """
    if path is None:
        path = default_snapshot_path()

    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise SnapshotError(f"Invalid JSON in {path}: {e}") from e

    return parse_snapshot(data, source=str(path))


async def fetch_snapshot(url: str | None = None) -> dict:
    """Download a snapshot export and return the decoded JSON.

    Args:
        url: Export URL (defaults to settings.snapshot_url)

    Raises:
        ValueError: If no URL is given or configured
        SnapshotError: If the response is not JSON
    """
    url = url or settings.snapshot_url
    if not url:
        raise ValueError("No snapshot URL given (set HERDMETRICS_SNAPSHOT_URL)")

    response = await http_get_with_retry(url)
    try:
        return response.json()
    except ValueError as e:
        raise SnapshotError(f"Snapshot at {url} is not JSON") from e


async def cache_snapshot(url: str | None = None, output_path: Path | None = None) -> HerdSnapshot:
    """Download a snapshot and write it to the local cache.

    The payload is validated before anything is written, so a bad download
    never replaces a good cached snapshot.

    Returns:
        The parsed snapshot
    """
    if output_path is None:
        output_path = default_snapshot_path()

    data = await fetch_snapshot(url)
    snapshot = parse_snapshot(data, source=url or settings.snapshot_url)

    if isinstance(data, dict):
        data.setdefault("fetchedAt", datetime.now().isoformat())

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, default=str, ensure_ascii=False)

    size_mb = output_path.stat().st_size / (1024 * 1024)
    logger.info("Wrote %s (%.2f MB)", output_path, size_mb)
    return snapshot
