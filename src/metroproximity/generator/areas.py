from __future__ import annotations

from dataclasses import dataclass, field
import logging
import sqlite3
from typing import Optional

from metroproximity.errors import MetroProximityError, NoInputData, ProviderError
from metroproximity.generator.context import GeneratorContext
from metroproximity.isochrone.aggregation import AggregationSummary
from metroproximity.isochrone.store import DeleteReport
from metroproximity.schemas.core import Area, AreaKey


logger = logging.getLogger(__name__)

# A failed cascade step is logged and the next step still runs.
_STEP_ERRORS = (MetroProximityError, OSError, sqlite3.Error)


@dataclass
class CreateAreaReport:
    area: Area
    stations: int = 0
    stations_with_isochrones: int = 0
    stations_failed: int = 0
    aggregates: Optional[AggregationSummary] = None


@dataclass
class DeleteAreaReport:
    area: Area
    stations_deleted: int = 0
    blobs: DeleteReport = field(default_factory=DeleteReport)
    failed_steps: list[str] = field(default_factory=list)

    @property
    def area_deleted(self) -> bool:
        return "area" not in self.failed_steps


@dataclass(frozen=True)
class AreaListing:
    area: Area
    station_count: int


def parse_center(center: str) -> tuple[float, float]:
    """
    Parse `"lat,lon"` (e.g. `41.9028,12.4964`).
    """

    parts = center.split(",")
    if len(parts) != 2:
        raise ValueError(f"Invalid center '{center}'; use latitude,longitude (e.g. 41.9028,12.4964)")
    try:
        return float(parts[0].strip()), float(parts[1].strip())
    except ValueError:
        raise ValueError(f"Invalid center '{center}'; use latitude,longitude (e.g. 41.9028,12.4964)") from None


def validate_area_input(*, lat: float, lon: float, diameter_m: int, display_name: str) -> None:
    if not -90 <= lat <= 90:
        raise ValueError(f"Latitude must be between -90 and 90 degrees (got {lat})")
    if not -180 <= lon <= 180:
        raise ValueError(f"Longitude must be between -180 and 180 degrees (got {lon})")
    if diameter_m <= 0:
        raise ValueError("Diameter must be a positive number")
    if not display_name or not display_name.strip():
        raise ValueError("Display name cannot be empty")


def create_area(
    ctx: GeneratorContext,
    name: str,
    *,
    center: str,
    diameter_m: int,
    display_name: str,
    developer: bool = False,
    no_isochrone: bool = False,
) -> CreateAreaReport:
    """
    Create (or fully replace) an area and populate it.

    Order: validate input, drop old isochrones (unless `no_isochrone`), write the area record,
    replace its stations from Overpass, generate per-station isochrones, then rebuild aggregates.
    Only invalid input is fatal; provider failures are logged and leave the area partially populated.
    """

    lat, lon = parse_center(center)
    validate_area_input(lat=lat, lon=lon, diameter_m=diameter_m, display_name=display_name)
    key = AreaKey.parse(name)
    area = Area(key=key, display_name=display_name.strip(), lat=lat, lon=lon, diameter_m=int(diameter_m))

    if not no_isochrone:
        cleaned = ctx.store.delete_scope(area.scope)
        if cleaned.deleted:
            logger.info("Removed %s existing isochrone files for %s", len(cleaned.deleted), key.name)

    ctx.tables.upsert_area(area)
    logger.info(
        "Area %s (%s) saved at (%s, %s) with diameter %sm",
        key.name,
        area.display_name,
        lat,
        lon,
        area.diameter_m,
    )
    report = CreateAreaReport(area=area)

    try:
        stations = ctx.overpass.stations_around(
            scope=area.scope,
            lat=lat,
            lon=lon,
            radius_m=area.diameter_m / 2,
            developer_mode=developer,
            developer_limit=ctx.config.generation.developer_limit,
        )
    except ProviderError as exc:
        logger.error("Failed to retrieve stations for %s from %s: %s", key.name, exc.provider, exc)
        return report

    report.stations = ctx.tables.replace_stations(area.scope, stations)
    logger.info("Stored %s stations for %s", report.stations, key.name)
    if developer:
        logger.info("Developer mode: station list limited per type to %s", ctx.config.generation.developer_limit)

    if no_isochrone:
        logger.info("Skipping isochrone generation for %s", key.name)
        return report

    for station in stations:
        result = ctx.generator.generate(area.scope, station)
        if result.saved:
            report.stations_with_isochrones += 1
        if result.failed:
            report.stations_failed += 1

    report.aggregates = ctx.aggregator.regenerate(area.scope)
    return report


def delete_area(ctx: GeneratorContext, name: str) -> DeleteAreaReport:
    """
    Delete an area: stations, then isochrone blobs, then the area record.

    The area must exist. Each step runs even if an earlier one failed; failures are listed in the report.
    """

    area = ctx.require_area(name)
    report = DeleteAreaReport(area=area)

    try:
        report.stations_deleted = ctx.tables.delete_stations(area.scope)
        logger.info("Deleted %s stations for %s", report.stations_deleted, area.key.name)
    except _STEP_ERRORS as exc:
        logger.error("Failed to delete stations for %s: %s", area.key.name, exc)
        report.failed_steps.append("stations")

    try:
        report.blobs = ctx.store.delete_scope(area.scope)
        if report.blobs.failed:
            report.failed_steps.append("isochrones")
        logger.info("Deleted %s isochrone files for %s", len(report.blobs.deleted), area.key.name)
    except _STEP_ERRORS as exc:
        logger.error("Failed to delete isochrones for %s: %s", area.key.name, exc)
        report.failed_steps.append("isochrones")

    try:
        ctx.tables.delete_area(area.key)
        logger.info("Deleted area record %s", area.key.name)
    except _STEP_ERRORS as exc:
        logger.error("Failed to delete area record %s: %s", area.key.name, exc)
        report.failed_steps.append("area")

    return report


def list_areas(ctx: GeneratorContext) -> list[AreaListing]:
    counts = ctx.tables.station_counts()
    areas = sorted(ctx.tables.list_areas(), key=lambda a: a.key.name)
    return [AreaListing(area=a, station_count=counts.get(a.scope, 0)) for a in areas]


def delete_area_isochrones(ctx: GeneratorContext, name: str) -> DeleteReport:
    """
    Delete the aggregated (area-wide and station-type) files; per-station files are kept.
    """

    area = ctx.require_area(name)
    report = ctx.store.delete_aggregates(area.scope)
    if not report.deleted and not report.failed:
        logger.info("No aggregated isochrones found for %s", area.key.name)
    elif report.failed:
        logger.warning(
            "Deleted %s of %s aggregated isochrones for %s",
            len(report.deleted),
            len(report.deleted) + len(report.failed),
            area.key.name,
        )
    return report


def recreate_area_isochrones(ctx: GeneratorContext, name: str) -> AggregationSummary:
    """
    Rebuild every aggregated file from the per-station files already in storage.

    Raises `NoInputData` when the area has no per-station isochrones at all.
    """

    area = ctx.require_area(name)
    if not ctx.store.has_station_files(area.scope):
        raise NoInputData(f"No station isochrones found for area '{area.key.name}'; generate them first")

    ctx.store.delete_aggregates(area.scope)
    return ctx.aggregator.regenerate(area.scope)
