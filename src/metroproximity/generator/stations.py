from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Optional, Union

from metroproximity.errors import NoInputData
from metroproximity.generator.context import GeneratorContext
from metroproximity.isochrone.aggregation import AggregationSummary
from metroproximity.isochrone.generation import GenerationReport
from metroproximity.isochrone.store import ALL_DURATIONS, DeleteReport, expand_durations
from metroproximity.schemas.core import Station


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StationListing:
    station: Station
    # One character per duration, `*` when the file exists (e.g. `**-*-`).
    status: str


@dataclass
class StationBatchReport:
    total: int = 0
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    aggregates: Optional[AggregationSummary] = None


def list_stations(ctx: GeneratorContext, name: str, *, filter_text: Optional[str] = None) -> list[StationListing]:
    """
    Stations of an area sorted by name, optionally filtered by a case-insensitive id/name substring.
    """

    area = ctx.require_area(name)
    stations = ctx.tables.list_stations(area.scope)
    if filter_text:
        needle = filter_text.lower()
        stations = [s for s in stations if needle in s.station_id.lower() or needle in s.name.lower()]
    stations = sorted(stations, key=lambda s: s.name)
    return [StationListing(station=s, status=ctx.store.status(area.scope, s.station_id)) for s in stations]


def station_isochrone(
    ctx: GeneratorContext,
    name: str,
    station_id: str,
    *,
    delete: bool = False,
    duration: int = ALL_DURATIONS,
) -> Union[GenerationReport, DeleteReport]:
    """
    Generate or delete the isochrones of one station (`duration=0` means every duration).
    """

    durations = expand_durations(duration)
    area = ctx.require_area(name)
    station = ctx.require_station(area, station_id)

    if delete:
        report = ctx.store.delete(area.scope, station.station_id, duration)
        logger.info(
            "Deleted %s of %s isochrones for %s (%s not found)",
            len(report.deleted),
            len(durations),
            station.name,
            len(report.missing),
        )
        return report
    return ctx.generator.generate(area.scope, station, durations=durations)


def delete_all_station_isochrones(ctx: GeneratorContext, name: str) -> StationBatchReport:
    area = ctx.require_area(name)
    stations = sorted(ctx.tables.list_stations(area.scope), key=lambda s: s.name)
    report = StationBatchReport(total=len(stations))
    if not stations:
        logger.info("No stations found for %s", area.key.name)
        return report

    for station in stations:
        deleted = ctx.store.delete(area.scope, station.station_id, ALL_DURATIONS)
        if deleted.ok:
            report.succeeded.append(station.station_id)
        else:
            logger.error("Failed to delete isochrones for %s (%s)", station.name, station.station_id)
            report.failed.append(station.station_id)

    _log_batch("Deleted isochrones", area.key.name, report)
    return report


def regenerate_all_station_isochrones(ctx: GeneratorContext, name: str) -> StationBatchReport:
    """
    Delete and regenerate the isochrones of every station, then rebuild the aggregates.

    Aggregates are only rebuilt when at least one station succeeded.
    """

    area = ctx.require_area(name)
    stations = sorted(ctx.tables.list_stations(area.scope), key=lambda s: s.name)
    if not stations:
        raise NoInputData(f"No stations found for area '{area.key.name}'")
    report = StationBatchReport(total=len(stations))

    for index, station in enumerate(stations, start=1):
        logger.info("[%s/%s] %s", index, len(stations), station.name)
        ctx.store.delete(area.scope, station.station_id, ALL_DURATIONS)
        result = ctx.generator.generate(area.scope, station)
        if result.ok:
            report.succeeded.append(station.station_id)
        else:
            report.failed.append(station.station_id)

    if report.succeeded:
        report.aggregates = ctx.aggregator.regenerate(area.scope)
    _log_batch("Regenerated isochrones", area.key.name, report)
    return report


def _log_batch(action: str, area_name: str, report: StationBatchReport) -> None:
    if not report.failed:
        logger.info("%s for all %s stations in %s", action, report.total, area_name)
    elif report.succeeded:
        logger.warning("%s for %s of %s stations in %s", action, len(report.succeeded), report.total, area_name)
    else:
        logger.error("%s failed for every station in %s", action, area_name)
