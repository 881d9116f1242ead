"""Zone and territory level aggregation of uploaded funnel and demographic data."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Iterator, Literal, Mapping, Optional, Sequence

from ...models.domain import MetricPoint, Territory, TerritoryMetricPoint

UNASSIGNED_LABEL = "Unassigned"
UNKNOWN_TERRITORY_LABEL = "Unknown"


class UnknownMetricError(ValueError):
    def __init__(self, metric: str) -> None:
        super().__init__(f"Unknown metric '{metric}'. Expected one of: {', '.join(METRICS)}")
        self.metric = metric


@dataclass(frozen=True, slots=True)
class MetricDefinition:
    name: str
    source: Literal["funnel", "demographic"]
    field: str
    rollup: Literal["sum", "mean"]


METRICS: dict[str, MetricDefinition] = {
    "leads": MetricDefinition("leads", "funnel", "leads", "sum"),
    "appointments": MetricDefinition("appointments", "funnel", "appointments", "sum"),
    "sales": MetricDefinition("sales", "funnel", "sales", "sum"),
    "revenue": MetricDefinition("revenue", "funnel", "revenue", "sum"),
    "population": MetricDefinition("population", "demographic", "population", "sum"),
    "householdIncome": MetricDefinition("householdIncome", "demographic", "householdIncome", "mean"),
}


def get_metric(metric: str) -> MetricDefinition:
    try:
        return METRICS[metric]
    except KeyError as exc:
        raise UnknownMetricError(metric) from exc


def _coerce_number(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).replace(",", ""))
    except ValueError:
        return None


def _record_zone(record: Mapping[str, Any]) -> Optional[str]:
    value = record.get("zipCode") or record.get("zip") or record.get("zone")
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _record_date(record: Mapping[str, Any]) -> Optional[date]:
    raw = record.get("date")
    if not raw:
        return None
    try:
        return date.fromisoformat(str(raw)[:10])
    except ValueError:
        return None


def _raw_values(
    definition: MetricDefinition,
    funnel_records: Iterable[Mapping[str, Any]],
    zone_metadata: Mapping[str, Mapping[str, Any]],
    start: Optional[date],
    end: Optional[date],
) -> Iterator[tuple[str, float]]:
    """Yield one (zone, value) pair per raw record contributing to the metric."""

    if definition.source == "funnel":
        for record in funnel_records:
            zone_id = _record_zone(record)
            if zone_id is None:
                continue
            if start or end:
                record_date = _record_date(record)
                if record_date is None:
                    continue
                if start and record_date < start:
                    continue
                if end and record_date > end:
                    continue
            # A funnel row without the field still places its zone in the series.
            yield zone_id, _coerce_number(record.get(definition.field)) or 0.0
        return

    for zone_id, data in zone_metadata.items():
        if not isinstance(data, Mapping):
            continue
        value = _coerce_number(data.get(definition.field))
        if value is None:
            continue
        yield str(zone_id), value


def _combine(values: Sequence[float], rollup: str) -> float:
    if rollup == "mean":
        return sum(values) / len(values) if values else 0.0
    return float(sum(values))


class MetricsAggregator:
    """Pure aggregation over already-normalized records."""

    def aggregate(
        self,
        metric: str,
        funnel_records: Iterable[Mapping[str, Any]] = (),
        zone_metadata: Mapping[str, Mapping[str, Any]] | None = None,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[MetricPoint]:
        """Zone-level series. Zones missing from the raw data are not zero-filled."""

        definition = get_metric(metric)
        grouped: dict[str, list[float]] = defaultdict(list)
        for zone_id, value in _raw_values(definition, funnel_records, zone_metadata or {}, start, end):
            grouped[zone_id].append(value)
        return [
            MetricPoint(zone_id=zone_id, value=_combine(values, definition.rollup), metric=metric)
            for zone_id, values in sorted(grouped.items())
        ]

    def rollup_by_territory(
        self,
        metric: str,
        assignments: Mapping[str, str],
        territories: Iterable[Territory],
        funnel_records: Iterable[Mapping[str, Any]] = (),
        zone_metadata: Mapping[str, Mapping[str, Any]] | None = None,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[TerritoryMetricPoint]:
        """Group raw records by the territory of their zone.

        Counts are summed. Rates are averaged over the raw records rather than over
        per-zone aggregates so that zones with more records are not under-weighted.
        Zones without an assignment are reported under ``territory_id=None``.
        """

        definition = get_metric(metric)
        names = {territory.id: territory.name for territory in territories}
        values: dict[Optional[str], list[float]] = defaultdict(list)
        zones: dict[Optional[str], set[str]] = defaultdict(set)
        for zone_id, value in _raw_values(definition, funnel_records, zone_metadata or {}, start, end):
            territory_id = assignments.get(zone_id) or None
            values[territory_id].append(value)
            zones[territory_id].add(zone_id)

        points: list[TerritoryMetricPoint] = []
        for territory_id in sorted(values, key=lambda key: (key is None, key or "")):
            if territory_id is None:
                label = UNASSIGNED_LABEL
            else:
                label = names.get(territory_id, UNKNOWN_TERRITORY_LABEL)
            points.append(
                TerritoryMetricPoint(
                    territory_id=territory_id,
                    territory_name=label,
                    value=_combine(values[territory_id], definition.rollup),
                    metric=metric,
                    zone_count=len(zones[territory_id]),
                )
            )
        return points


def value_range(values: Iterable[float]) -> tuple[float, float]:
    """Min/max used by the map layer to scale colors; (0, 0) for an empty series."""
    collected = list(values)
    if not collected:
        return 0.0, 0.0
    return min(collected), max(collected)
