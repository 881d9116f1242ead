"""Utilities to serialize territory assignments into JSON/CSV exports."""

from __future__ import annotations

import csv
import io
from typing import Iterable, Literal, Mapping

from ...models.domain import Territory

ExportFormat = Literal["json", "csv"]
EXPORT_FIELDS = ("zipCode", "territoryId", "territoryName")


def assignment_rows(assignments: Mapping[str, str], territories: Iterable[Territory]) -> list[dict]:
    """One row per assigned zone; ids without a territory record export as ``Unknown``."""

    names = {territory.id: territory.name for territory in territories}
    rows: list[dict] = []
    for zone_id, territory_id in sorted(assignments.items()):
        rows.append(
            {
                "zipCode": zone_id,
                "territoryId": territory_id or None,
                "territoryName": names.get(territory_id, "Unknown") if territory_id else "Unassigned",
            }
        )
    return rows


def assignments_to_csv(rows: Iterable[Mapping[str, object]]) -> str:
    buffer = io.StringIO()
    # Header is bare, cells are always quoted.
    buffer.write(",".join(EXPORT_FIELDS) + "\n")
    writer = csv.DictWriter(buffer, fieldnames=list(EXPORT_FIELDS), quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow({key: "" if row.get(key) is None else row.get(key) for key in EXPORT_FIELDS})
    return buffer.getvalue()


def export_filename(fmt: ExportFormat, today: str) -> str:
    return f"territory-assignments-{today}.{fmt}"
