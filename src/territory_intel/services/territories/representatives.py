"""Representative records; active representatives provide coverage origins."""

from __future__ import annotations

import functools
import logging
import threading
import uuid
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence

from ...config import settings
from ...models.domain import Origin, Point, Representative
from ...persistence.filesystem import FileStorage

logger = logging.getLogger(__name__)


def representative_to_json(rep: Representative) -> dict:
    return {
        "id": rep.id,
        "name": rep.name,
        "email": rep.email,
        "phone": rep.phone,
        "location": {"lat": rep.location.latitude, "lng": rep.location.longitude} if rep.location else None,
        "territoryId": rep.territory_id,
        "active": rep.active,
    }


def representative_from_json(raw: Mapping[str, Any]) -> Representative:
    location = raw.get("location")
    point: Optional[Point] = None
    if isinstance(location, Mapping) and location.get("lat") is not None and location.get("lng") is not None:
        point = Point(float(location["lat"]), float(location["lng"]))
    return Representative(
        id=str(raw.get("id") or f"rep-{uuid.uuid4().hex}"),
        name=str(raw.get("name") or "New Representative"),
        email=str(raw.get("email") or ""),
        phone=str(raw.get("phone") or ""),
        location=point,
        territory_id=raw.get("territoryId") or None,
        active=bool(raw.get("active", True)),
    )


class RepresentativeStore:
    def __init__(self, path: Path | None = None, *, storage: FileStorage | None = None) -> None:
        self.path = Path(path or settings.representatives_file)
        self._storage = storage or FileStorage(root=self.path.parent)
        self._lock = threading.Lock()

    def _read(self, *, strict: bool) -> list[Representative]:
        try:
            raw = self._storage.read_json(self.path, default=[])
            if not isinstance(raw, list):
                raise ValueError("representatives document must be a list")
            try:
                return [representative_from_json(item) for item in raw if isinstance(item, Mapping)]
            except (KeyError, TypeError) as exc:
                raise ValueError(f"malformed representative record: {exc}") from exc
        except (OSError, ValueError) as exc:
            if strict:
                raise
            logger.error("Failed to load representatives from %s: %s", self.path, exc)
            return []

    def list_representatives(self) -> list[Representative]:
        return self._read(strict=False)

    def _write(self, reps: Iterable[Representative]) -> None:
        self._storage.write_json(self.path, [representative_to_json(rep) for rep in reps])

    def upsert(self, rep: Representative) -> Representative:
        with self._lock:
            reps = self._read(strict=True)
            for index, existing in enumerate(reps):
                if existing.id == rep.id:
                    reps[index] = rep
                    break
            else:
                reps.append(rep)
            self._write(reps)
        return rep

    def bulk_replace(self, reps: Iterable[Representative]) -> list[Representative]:
        replacement = list(reps)
        with self._lock:
            self._write(replacement)
        return replacement

    def active_origins(self, representative_ids: Sequence[str] | None = None) -> list[Origin]:
        """Origins for active representatives with a location, optionally restricted to ``representative_ids``."""
        wanted = set(representative_ids) if representative_ids is not None else None
        origins: list[Origin] = []
        for rep in self.list_representatives():
            if not rep.active or rep.location is None:
                continue
            if wanted is not None and rep.id not in wanted:
                continue
            origins.append(Origin(rep.location.latitude, rep.location.longitude, representative_id=rep.id))
        return origins


@functools.lru_cache(maxsize=1)
def get_representative_store() -> RepresentativeStore:
    return RepresentativeStore()
