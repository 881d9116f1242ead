"""Territory records and the zone -> territory assignment map.

Both documents are read whole, modified in memory and written whole. Writes on a
store instance are serialized with a lock; there is no coordination between
processes, so the last writer wins across instances.
"""

from __future__ import annotations

import functools
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Literal, Mapping, Optional

from ...config import settings
from ...models.domain import Territory
from ...persistence.filesystem import FileStorage

logger = logging.getLogger(__name__)

DEFAULT_TERRITORY_NAME = "New Territory"
DEFAULT_TERRITORY_COLOR = "#FF6B6B"
UPDATABLE_FIELDS = ("name", "color")

ReferencePolicy = Literal["reject", "allow"]


class TerritoryNotFoundError(LookupError):
    def __init__(self, territory_id: str) -> None:
        super().__init__(f"Territory '{territory_id}' not found.")
        self.territory_id = territory_id


class UnknownTerritoryError(ValueError):
    """Raised when an assignment names a territory id that does not exist."""

    def __init__(self, territory_ids: Iterable[str]) -> None:
        self.territory_ids = sorted(set(territory_ids))
        super().__init__(f"Unknown territory id(s): {', '.join(self.territory_ids)}")


def territory_to_json(territory: Territory) -> dict:
    return {
        "id": territory.id,
        "name": territory.name,
        "color": territory.color,
        "createdAt": territory.created_at,
    }


def territory_from_json(raw: Mapping[str, Any]) -> Territory:
    return Territory(
        id=str(raw["id"]),
        name=str(raw.get("name") or DEFAULT_TERRITORY_NAME),
        color=str(raw.get("color") or DEFAULT_TERRITORY_COLOR),
        created_at=str(raw.get("createdAt") or raw.get("created_at") or ""),
    )


def _clean_assignments(assignments: Mapping[str, Optional[str]]) -> dict[str, str]:
    # Unassigned zones are absent; a null marker is never stored.
    return {str(zone_id): str(territory_id) for zone_id, territory_id in assignments.items() if territory_id}


class TerritoryStore:
    """Single writer for territories and assignments."""

    def __init__(
        self,
        territories_path: Path | None = None,
        assignments_path: Path | None = None,
        *,
        reference_policy: ReferencePolicy | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        id_factory: Callable[[], str] | None = None,
        storage: FileStorage | None = None,
    ) -> None:
        self.territories_path = Path(territories_path or settings.territories_file)
        self.assignments_path = Path(assignments_path or settings.assignments_file)
        self.reference_policy: ReferencePolicy = reference_policy or settings.territory_reference_policy
        self.clock = clock
        self._id_factory = id_factory or (lambda: f"territory-{uuid.uuid4().hex}")
        self._storage = storage or FileStorage(root=self.territories_path.parent)
        self._lock = threading.Lock()

    # reads

    def _read_territories(self, *, strict: bool) -> list[Territory]:
        try:
            raw = self._storage.read_json(self.territories_path, default=[])
            if not isinstance(raw, list):
                raise ValueError("territories document must be a list")
            try:
                return [territory_from_json(item) for item in raw]
            except (KeyError, TypeError) as exc:
                raise ValueError(f"malformed territory record: {exc}") from exc
        except (OSError, ValueError) as exc:
            if strict:
                raise
            logger.error("Failed to load territories from %s: %s", self.territories_path, exc)
            return []

    def _read_assignments(self, *, strict: bool) -> dict[str, str]:
        try:
            raw = self._storage.read_json(self.assignments_path, default={})
            if not isinstance(raw, dict):
                raise ValueError("assignments document must be an object")
            return _clean_assignments(raw)
        except (OSError, ValueError) as exc:
            if strict:
                raise
            logger.error("Failed to load assignments from %s: %s", self.assignments_path, exc)
            return {}

    def list_territories(self) -> list[Territory]:
        return self._read_territories(strict=False)

    def get_territory(self, territory_id: str) -> Territory:
        for territory in self.list_territories():
            if territory.id == territory_id:
                return territory
        raise TerritoryNotFoundError(territory_id)

    def get_assignments(self) -> dict[str, str]:
        return self._read_assignments(strict=False)

    # writes

    def _write_territories(self, territories: Iterable[Territory]) -> None:
        self._storage.write_json(self.territories_path, [territory_to_json(t) for t in territories])

    def _write_assignments(self, assignments: Mapping[str, str]) -> None:
        self._storage.write_json(self.assignments_path, dict(assignments))

    def create_territory(self, name: str | None = None, color: str | None = None) -> Territory:
        with self._lock:
            territories = self._read_territories(strict=True)
            territory = Territory(
                id=self._id_factory(),
                name=name or DEFAULT_TERRITORY_NAME,
                color=color or DEFAULT_TERRITORY_COLOR,
                created_at=self.clock().isoformat(),
            )
            territories.append(territory)
            self._write_territories(territories)
        logger.info("Created territory %s (%s)", territory.id, territory.name)
        return territory

    def update_territory(self, territory_id: str, fields: Mapping[str, Any]) -> Territory:
        """Apply name/color updates. ``id`` and ``createdAt`` cannot be changed; blank values are ignored."""
        with self._lock:
            territories = self._read_territories(strict=True)
            for index, territory in enumerate(territories):
                if territory.id != territory_id:
                    continue
                for key in UPDATABLE_FIELDS:
                    value = fields.get(key)
                    if value is not None and str(value).strip():
                        setattr(territory, key, str(value))
                territories[index] = territory
                self._write_territories(territories)
                return territory
        raise TerritoryNotFoundError(territory_id)

    def delete_territory(self, territory_id: str) -> None:
        """Remove the territory record. Assignments that reference it are left in place."""
        with self._lock:
            territories = self._read_territories(strict=True)
            remaining = [t for t in territories if t.id != territory_id]
            if len(remaining) == len(territories):
                raise TerritoryNotFoundError(territory_id)
            self._write_territories(remaining)
        logger.info("Deleted territory %s; existing assignments were not cleared", territory_id)

    def bulk_replace_territories(self, territories: Iterable[Territory]) -> list[Territory]:
        replacement = list(territories)
        with self._lock:
            self._write_territories(replacement)
        return replacement

    def _check_references(self, territory_ids: Iterable[str]) -> None:
        if self.reference_policy != "reject":
            return
        wanted = set(territory_ids)
        if not wanted:
            return
        known = {t.id for t in self._read_territories(strict=True)}
        missing = wanted - known
        if missing:
            raise UnknownTerritoryError(missing)

    def assign(self, zone_id: str, territory_id: Optional[str]) -> dict[str, str]:
        """Assign a zone, or unassign it when ``territory_id`` is empty."""
        if not zone_id or not str(zone_id).strip():
            raise ValueError("zone_id must not be empty.")
        zone_id = str(zone_id).strip()
        with self._lock:
            if territory_id:
                self._check_references([territory_id])
            assignments = self._read_assignments(strict=True)
            if territory_id:
                assignments[zone_id] = territory_id
            else:
                assignments.pop(zone_id, None)
            self._write_assignments(assignments)
        return assignments

    def bulk_replace_assignments(self, assignments: Mapping[str, Optional[str]]) -> dict[str, str]:
        cleaned = _clean_assignments(assignments)
        with self._lock:
            self._check_references(cleaned.values())
            self._write_assignments(cleaned)
        return cleaned


@functools.lru_cache(maxsize=1)
def get_territory_store() -> TerritoryStore:
    return TerritoryStore()
