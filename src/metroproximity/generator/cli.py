from __future__ import annotations

import argparse
import logging
import sqlite3
from typing import Optional, Sequence

from metroproximity.config.loader import load_config
from metroproximity.errors import NoInputData, NotFound
from metroproximity.generator import areas, stations
from metroproximity.generator.context import GeneratorContext, build_context
from metroproximity.isochrone.aggregation import AggregationSummary
from metroproximity.isochrone.store import ALL_DURATIONS, DeleteReport
from metroproximity.schemas.core import DURATIONS
from metroproximity.utils.logging import configure_logging


logger = logging.getLogger(__name__)

# Precondition failures: the command aborts with exit code 1.
_FATAL_ERRORS = (NotFound, NoInputData, ValueError)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="metroproximity-generator",
        description="Populate areas, stations and walking isochrones.",
    )
    parser.add_argument("--config", default=None, help="Config JSON path (overrides METROPROXIMITY_CONFIG_PATH).")
    parser.add_argument("--log-level", default=None, help="Override logging.level (DEBUG, INFO, WARNING, ...).")
    groups = parser.add_subparsers(dest="group", required=True)

    area = groups.add_parser("area", help="Manage areas.")
    area_cmds = area.add_subparsers(dest="command", required=True)

    create = area_cmds.add_parser("create", help="Create or replace an area and populate it.")
    create.add_argument("name", help="Area name as country/area (e.g. it/roma).")
    create.add_argument("--center", required=True, help="Center as latitude,longitude.")
    create.add_argument("--diameter", required=True, type=int, help="Diameter in meters.")
    create.add_argument("--displayname", required=True, help="Human readable area name.")
    create.add_argument("--developer", action="store_true", help="Keep at most a few stations per type.")
    create.add_argument("--noisochrone", action="store_true", help="Store stations only, skip isochrones.")

    delete = area_cmds.add_parser("delete", help="Delete an area with its stations and isochrones.")
    delete.add_argument("name")

    area_cmds.add_parser("list", help="List areas with station counts.")

    area_iso = area_cmds.add_parser("isochrones", help="Manage aggregated isochrones of an area.")
    area_iso.add_argument("name")
    mode = area_iso.add_mutually_exclusive_group(required=True)
    mode.add_argument("--delete", action="store_true", help="Delete area-wide and station-type files.")
    mode.add_argument("--recreate", action="store_true", help="Rebuild them from per-station files.")

    station = groups.add_parser("station", help="Manage stations.")
    station_cmds = station.add_subparsers(dest="command", required=True)

    st_list = station_cmds.add_parser("list", help="List stations with isochrone availability.")
    st_list.add_argument("name")
    st_list.add_argument("--filter", default=None, help="Case-insensitive id/name substring.")

    st_iso = station_cmds.add_parser("isochrone", help="Generate or delete the isochrones of one station.")
    st_iso.add_argument("name")
    st_iso.add_argument("station_id")
    st_iso.add_argument("--delete", action="store_true")
    st_iso.add_argument(
        "--duration",
        type=int,
        default=ALL_DURATIONS,
        help=f"One of {list(DURATIONS)}; 0 (default) means all.",
    )

    st_all = station_cmds.add_parser("isochrones", help="Delete or regenerate the isochrones of every station.")
    st_all.add_argument("name")
    mode = st_all.add_mutually_exclusive_group(required=True)
    mode.add_argument("--delete", action="store_true")
    mode.add_argument("--regenerate", action="store_true")

    groups.add_parser("check", help="Check storage access and the Mapbox token.")
    return parser


def _print_aggregates(summary: Optional[AggregationSummary]) -> None:
    if summary is None:
        return
    print(f"aggregates: {summary.written} written, {summary.skipped} skipped, {summary.failed} failed")


def _print_delete(report: DeleteReport) -> None:
    print(f"deleted {len(report.deleted)}, not found {len(report.missing)}, failed {len(report.failed)}")


def _run_area(ctx: GeneratorContext, args: argparse.Namespace) -> int:
    if args.command == "create":
        report = areas.create_area(
            ctx,
            args.name,
            center=args.center,
            diameter_m=args.diameter,
            display_name=args.displayname,
            developer=args.developer,
            no_isochrone=args.noisochrone,
        )
        print(f"area {report.area.key.name} ({report.area.display_name}): {report.stations} stations")
        if not args.noisochrone:
            print(f"isochrones: {report.stations_with_isochrones} stations, {report.stations_failed} with failures")
        _print_aggregates(report.aggregates)
        return 0

    if args.command == "delete":
        report = areas.delete_area(ctx, args.name)
        print(f"deleted {report.stations_deleted} stations and {len(report.blobs.deleted)} isochrone files")
        if report.failed_steps:
            print(f"failed steps: {', '.join(report.failed_steps)}")
        return 0 if report.area_deleted else 1

    if args.command == "list":
        listings = areas.list_areas(ctx)
        if not listings:
            print("No areas found")
        for item in listings:
            print(f"{item.area.key.name} {item.area.display_name} {item.station_count}")
        return 0

    if args.delete:
        _print_delete(areas.delete_area_isochrones(ctx, args.name))
    else:
        _print_aggregates(areas.recreate_area_isochrones(ctx, args.name))
    return 0


def _run_station(ctx: GeneratorContext, args: argparse.Namespace) -> int:
    if args.command == "list":
        listings = stations.list_stations(ctx, args.name, filter_text=args.filter)
        if not listings:
            print("No stations found")
        for item in listings:
            s = item.station
            print(f"{s.station_id:<12} {s.name:<30} {s.station_type:<10} {item.status} {s.wikipedia_link or '-'}")
        return 0

    if args.command == "isochrone":
        result = stations.station_isochrone(
            ctx,
            args.name,
            args.station_id,
            delete=args.delete,
            duration=args.duration,
        )
        if isinstance(result, DeleteReport):
            _print_delete(result)
        else:
            print(f"saved {result.saved or '-'}, failed {result.failed or '-'}")
        return 0

    if args.delete:
        report = stations.delete_all_station_isochrones(ctx, args.name)
    else:
        report = stations.regenerate_all_station_isochrones(ctx, args.name)
    print(f"{len(report.succeeded)} of {report.total} stations done, {len(report.failed)} failed")
    _print_aggregates(report.aggregates)
    return 0


def _run_check(ctx: GeneratorContext) -> int:
    ok = True
    try:
        ctx.tables.list_areas()
        ctx.store.check_writable()
        print("storage: ok")
    except (OSError, sqlite3.Error) as exc:
        logger.error("Storage check failed: %s", exc)
        print("storage: failed")
        ok = False

    if ctx.mapbox.check_token():
        print("mapbox token: ok")
    else:
        print("mapbox token: invalid or missing")
        ok = False
    return 0 if ok else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    configure_logging(config.logging, level_override=args.log_level)

    ctx = build_context(config)
    try:
        if args.group == "area":
            return _run_area(ctx, args)
        if args.group == "station":
            return _run_station(ctx, args)
        return _run_check(ctx)
    except _FATAL_ERRORS as exc:
        logger.error("%s", exc)
        return 1
    finally:
        ctx.close()
