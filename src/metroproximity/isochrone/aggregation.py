from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Literal, Optional, Sequence

from shapely.errors import ShapelyError
from shapely.geometry.base import BaseGeometry

from metroproximity.errors import MetroProximityError, NotFound
from metroproximity.gis.geometry import geometries_from_feature_collection
from metroproximity.isochrone.paths import check_duration, station_path
from metroproximity.isochrone.store import IsochroneStore
from metroproximity.isochrone.union import aggregate
from metroproximity.repository.table_store import SqliteTableStore
from metroproximity.schemas.core import AGGREGATED_STATION_TYPES, DURATIONS, normalize_station_type


logger = logging.getLogger(__name__)

AggregationStatus = Literal["written", "skipped", "failed"]

# Anything that can go wrong reading one station file; the file is skipped, the batch continues.
# `TypeError` comes from shapely `shape()` on malformed coordinate arrays.
_READ_ERRORS = (NotFound, ValueError, TypeError, OSError, ShapelyError)


@dataclass(frozen=True)
class AggregationResult:
    scope: str
    duration: int
    station_type: Optional[str]
    status: AggregationStatus
    path: Optional[str] = None
    geometry_count: int = 0
    skipped_files: tuple[str, ...] = ()
    error: Optional[str] = None


@dataclass
class AggregationSummary:
    scope: str
    results: list[AggregationResult] = field(default_factory=list)

    def _count(self, status: AggregationStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def written(self) -> int:
        return self._count("written")

    @property
    def skipped(self) -> int:
        return self._count("skipped")

    @property
    def failed(self) -> int:
        return self._count("failed")


class AggregationOrchestrator:
    """
    Build area-wide and per-station-type coverage maps from per-station isochrone files.

    Every (duration, target) pair is independent: a failure is logged and recorded in the summary,
    and the remaining pairs still run.
    """

    def __init__(
        self,
        store: IsochroneStore,
        tables: SqliteTableStore,
        *,
        durations: Sequence[int] = DURATIONS,
        station_types: Sequence[str] = AGGREGATED_STATION_TYPES,
    ) -> None:
        self._store = store
        self._tables = tables
        self._durations = tuple(durations)
        self._station_types = tuple(station_types)

    def _load_geometries(self, paths: Sequence[str]) -> tuple[list[BaseGeometry], list[str]]:
        geometries: list[BaseGeometry] = []
        skipped: list[str] = []
        for path in paths:
            try:
                found = geometries_from_feature_collection(self._store.load(path))
            except _READ_ERRORS as exc:
                logger.warning("Skipping unreadable isochrone %s: %s", path, exc)
                skipped.append(path)
                continue
            if not found:
                logger.warning("Skipping isochrone without geometry: %s", path)
                skipped.append(path)
                continue
            geometries.extend(found)
        return geometries, skipped

    def _write(
        self,
        scope: str,
        duration: int,
        station_type: Optional[str],
        geometries: list[BaseGeometry],
        skipped: list[str],
    ) -> AggregationResult:
        target = f"{station_type or 'area-wide'} {duration}min in {scope}"
        if not geometries:
            logger.warning("No geometries for %s; nothing written", target)
            return AggregationResult(
                scope=scope,
                duration=duration,
                station_type=station_type,
                status="skipped",
                skipped_files=tuple(skipped),
            )

        if station_type is None:
            fc = aggregate(geometries, "area", scope, duration)
        else:
            fc = aggregate(geometries, "station-type", station_type, duration)
        path = self._store.put_aggregate(scope, duration, fc, station_type=station_type)
        logger.info("Saved %s (%s geometries) to %s", target, len(geometries), path)
        return AggregationResult(
            scope=scope,
            duration=duration,
            station_type=station_type,
            status="written",
            path=path,
            geometry_count=len(geometries),
            skipped_files=tuple(skipped),
        )

    def aggregate_area(self, scope: str, duration: int) -> AggregationResult:
        check_duration(duration)
        paths = self._store.list_station_files(scope, duration)
        logger.info("Aggregating %s station files for %s %smin", len(paths), scope, duration)
        geometries, skipped = self._load_geometries(paths)
        return self._write(scope, duration, None, geometries, skipped)

    def aggregate_station_type(self, scope: str, station_type: str, duration: int) -> AggregationResult:
        check_duration(duration)
        normalized = normalize_station_type(station_type)
        if normalized not in AGGREGATED_STATION_TYPES:
            raise ValueError(f"Unsupported station type: {station_type}")
        station_type = normalized
        stations = self._tables.list_stations(scope, station_type=station_type)
        if not stations:
            logger.info("No stations of type %s in %s", station_type, scope)
        paths = [station_path(scope, s.station_id, duration) for s in stations]
        geometries, skipped = self._load_geometries(paths)
        return self._write(scope, duration, station_type, geometries, skipped)

    def regenerate(self, scope: str) -> AggregationSummary:
        summary = AggregationSummary(scope=scope)
        for duration in self._durations:
            for station_type in self._station_types:
                summary.results.append(self._guarded(scope, duration, station_type))
            summary.results.append(self._guarded(scope, duration, None))
        logger.info(
            "Aggregates for %s: %s written, %s skipped, %s failed",
            scope,
            summary.written,
            summary.skipped,
            summary.failed,
        )
        return summary

    def _guarded(self, scope: str, duration: int, station_type: Optional[str]) -> AggregationResult:
        try:
            if station_type is None:
                return self.aggregate_area(scope, duration)
            return self.aggregate_station_type(scope, station_type, duration)
        except (MetroProximityError, ValueError, TypeError, OSError, ShapelyError) as exc:
            logger.error(
                "Failed to aggregate %s %smin for %s: %s",
                station_type or "area-wide",
                duration,
                scope,
                exc,
            )
            return AggregationResult(
                scope=scope,
                duration=duration,
                station_type=station_type,
                status="failed",
                error=str(exc),
            )
