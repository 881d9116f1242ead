"""Persistent cache for drive-time coverage results."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from ...config import settings
from ...models.domain import CoverageCacheEntry, Origin
from ...persistence.filesystem import FileStorage

logger = logging.getLogger(__name__)

# Coordinates are rounded to 5 decimal places (about 1.1 m) before keying so that
# float representation noise from clients does not defeat the cache.
FINGERPRINT_PRECISION = 5
DEFAULT_TTL = timedelta(hours=24)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_fingerprint(minutes: int, origins: Sequence[Origin], precision: int = FINGERPRINT_PRECISION) -> str:
    """Deterministic cache key: ``"<minutes>|<lat>,<lon>;<lat>,<lon>"`` in request order."""

    def _quantize(value: float) -> str:
        # "+ 0.0" folds -0.0 into 0.0
        return f"{round(float(value), precision) + 0.0:.{precision}f}"

    coords = ";".join(f"{_quantize(origin.latitude)},{_quantize(origin.longitude)}" for origin in origins)
    return f"{int(minutes)}|{coords}"


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _entry_to_json(entry: CoverageCacheEntry) -> dict:
    return {
        "minutes": entry.minutes,
        "repLocations": [
            {"lat": origin.latitude, "lng": origin.longitude, **({"repId": origin.representative_id} if origin.representative_id else {})}
            for origin in entry.origins
        ],
        "coveredZipCodes": sorted(entry.zone_ids),
        "calculatedAt": entry.computed_at.isoformat(),
    }


def _entry_from_json(raw: Any) -> Optional[CoverageCacheEntry]:
    if not isinstance(raw, dict):
        return None
    computed_at = _parse_timestamp(raw.get("calculatedAt"))
    if computed_at is None:
        return None
    try:
        origins = [
            Origin(latitude=float(item["lat"]), longitude=float(item["lng"]), representative_id=item.get("repId"))
            for item in raw.get("repLocations") or []
        ]
        return CoverageCacheEntry(
            minutes=int(raw.get("minutes", 0)),
            origins=origins,
            zone_ids=frozenset(str(zone_id) for zone_id in raw.get("coveredZipCodes") or []),
            computed_at=computed_at,
        )
    except (KeyError, TypeError, ValueError):
        return None


class CoverageCache:
    """Flat fingerprint -> entry mapping persisted as a single JSON document.

    The document is read once on construction and rewritten whole after every
    change. Entries older than ``ttl`` are reported as misses but stay on disk
    until a fresh result overwrites them.
    """

    def __init__(
        self,
        path: Path | None = None,
        *,
        ttl: timedelta | None = None,
        clock: Clock = utc_now,
        storage: FileStorage | None = None,
    ) -> None:
        self.path = Path(path or settings.coverage_cache_file)
        self.ttl = ttl or timedelta(hours=settings.coverage_cache_ttl_hours)
        self.clock = clock
        self._storage = storage or FileStorage(root=self.path.parent)
        self._lock = threading.Lock()
        self._entries: dict[str, Any] = self._read()

    def _read(self) -> dict[str, Any]:
        try:
            data = self._storage.read_json(self.path, default={})
        except (OSError, ValueError) as exc:
            logger.warning("Coverage cache at %s unreadable, starting empty: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Coverage cache at %s is not a mapping, starting empty", self.path)
            return {}
        return data

    def _write(self) -> bool:
        try:
            self._storage.write_json(self.path, self._entries)
        except OSError as exc:
            logger.warning("Failed to write coverage cache to %s: %s", self.path, exc)
            return False
        return True

    def is_fresh(self, entry: CoverageCacheEntry) -> bool:
        return self.clock() - entry.computed_at < self.ttl

    def get(self, fingerprint: str) -> Optional[CoverageCacheEntry]:
        entry = _entry_from_json(self._entries.get(fingerprint))
        if entry is None:
            return None
        if not self.is_fresh(entry):
            logger.debug("Coverage cache entry %s expired at %s", fingerprint, entry.computed_at + self.ttl)
            return None
        return entry

    def put(self, fingerprint: str, entry: CoverageCacheEntry) -> bool:
        """Store an entry. Returns False when persisting failed; the failure is not raised."""
        with self._lock:
            self._entries[fingerprint] = _entry_to_json(entry)
            return self._write()

    def invalidate(self, fingerprint: str) -> bool:
        with self._lock:
            if fingerprint not in self._entries:
                return False
            del self._entries[fingerprint]
            self._write()
            return True

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries = {}
            self._write()
            return removed

    def __len__(self) -> int:
        return len(self._entries)
