"""Storage for uploaded metric datasets (funnel events and zone demographics).

Records arrive already normalized by the CSV import step; this module only
persists and reloads them.
"""

from __future__ import annotations

import functools
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Sequence

from ..config import settings
from ..persistence.filesystem import FileStorage

logger = logging.getLogger(__name__)


class MetricsRepository:
    def __init__(
        self,
        funnel_path: Path | None = None,
        metadata_path: Path | None = None,
        *,
        storage: FileStorage | None = None,
    ) -> None:
        self.funnel_path = Path(funnel_path or settings.funnel_data_file)
        self.metadata_path = Path(metadata_path or settings.zone_metadata_file)
        self._storage = storage or FileStorage(root=self.funnel_path.parent)

    def load_funnel_data(self) -> list[dict[str, Any]]:
        try:
            data = self._storage.read_json(self.funnel_path, default=[])
        except (OSError, ValueError) as exc:
            logger.error("Failed to load funnel data from %s: %s", self.funnel_path, exc)
            return []
        if not isinstance(data, list):
            logger.warning("Funnel data at %s is not a list; ignoring", self.funnel_path)
            return []
        return [record for record in data if isinstance(record, dict)]

    def load_zone_metadata(self) -> dict[str, dict[str, Any]]:
        try:
            data = self._storage.read_json(self.metadata_path, default={})
        except (OSError, ValueError) as exc:
            logger.error("Failed to load zone metadata from %s: %s", self.metadata_path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Zone metadata at %s is not an object; ignoring", self.metadata_path)
            return {}
        return {str(zone_id): value for zone_id, value in data.items() if isinstance(value, dict)}

    def save_funnel_data(self, records: Sequence[Mapping[str, Any]]) -> int:
        payload = [dict(record) for record in records]
        self._storage.write_json(self.funnel_path, payload)
        logger.info("Stored %d funnel records", len(payload))
        return len(payload)

    def save_zone_metadata(self, metadata: Mapping[str, Mapping[str, Any]]) -> int:
        payload = {str(zone_id): dict(values) for zone_id, values in metadata.items()}
        self._storage.write_json(self.metadata_path, payload)
        logger.info("Stored demographics for %d zones", len(payload))
        return len(payload)

    def list_datasets(self) -> list[dict]:
        datasets: list[dict] = []
        funnel_stat = self._storage.stat(self.funnel_path)
        if funnel_stat is not None:
            datasets.append(
                {
                    "id": "funnel-data",
                    "name": "Funnel Data",
                    "type": "funnel",
                    "description": "Leads, appointments, sales, and revenue data by zip code",
                    "recordCount": len(self.load_funnel_data()),
                    "uploadedAt": datetime.fromtimestamp(funnel_stat.st_mtime, tz=timezone.utc).isoformat(),
                    "fileSize": funnel_stat.st_size,
                }
            )
        metadata_stat = self._storage.stat(self.metadata_path)
        if metadata_stat is not None:
            datasets.append(
                {
                    "id": "zipcode-metadata",
                    "name": "Zip Code Metrics",
                    "type": "metrics",
                    "description": "Population, household income, and demographic data by zip code",
                    "recordCount": len(self.load_zone_metadata()),
                    "uploadedAt": datetime.fromtimestamp(metadata_stat.st_mtime, tz=timezone.utc).isoformat(),
                    "fileSize": metadata_stat.st_size,
                }
            )
        return datasets


@functools.lru_cache(maxsize=1)
def get_metrics_repository() -> MetricsRepository:
    return MetricsRepository()
