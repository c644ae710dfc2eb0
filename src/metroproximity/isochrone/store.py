from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Mapping, Optional

from metroproximity.errors import NotFound
from metroproximity.isochrone.paths import (
    area_path,
    check_duration,
    is_aggregate_path,
    parse_station_path,
    station_path,
    station_type_path,
)
from metroproximity.repository.blob_store import LocalBlobStore
from metroproximity.schemas.core import DURATIONS


logger = logging.getLogger(__name__)

# Passing this as `duration` selects every duration.
ALL_DURATIONS = 0


@dataclass
class DeleteReport:
    deleted: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def merge(self, other: "DeleteReport") -> "DeleteReport":
        self.deleted.extend(other.deleted)
        self.missing.extend(other.missing)
        self.failed.extend(other.failed)
        return self


def expand_durations(duration: int) -> tuple[int, ...]:
    if duration == ALL_DURATIONS:
        return DURATIONS
    return (check_duration(duration),)


class IsochroneStore:
    """
    Isochrone blobs of every area, in one container.

    Per-station files live under `{scope}/{station_id}/`, aggregated files directly under `{scope}/`.
    """

    def __init__(self, blobs: LocalBlobStore) -> None:
        self._blobs = blobs

    # -- per-station ---------------------------------------------------------

    def put(self, scope: str, station_id: str, duration: int, fc: Mapping[str, Any]) -> str:
        path = station_path(scope, station_id, duration)
        self._blobs.put_json(path, fc)
        return path

    def get(self, scope: str, station_id: str, duration: int) -> dict[str, Any]:
        path = station_path(scope, station_id, duration)
        try:
            return self._blobs.get_json(path)
        except NotFound:
            raise NotFound(f"No {duration}min isochrone for station '{station_id}' in '{scope}'") from None

    def exists(self, scope: str, station_id: str, duration: int) -> bool:
        return self._blobs.exists(station_path(scope, station_id, duration))

    def status(self, scope: str, station_id: str) -> str:
        """
        One character per duration: `*` present, `-` missing (e.g. `**-*-`).
        """

        return "".join("*" if self.exists(scope, station_id, d) else "-" for d in DURATIONS)

    def delete(self, scope: str, station_id: str, duration: int = ALL_DURATIONS) -> DeleteReport:
        report = DeleteReport()
        for d in expand_durations(duration):
            self._delete_one(station_path(scope, station_id, d), report)
        return report

    def list_station_files(self, scope: str, duration: int) -> list[str]:
        check_duration(duration)
        out = []
        for name in self._blobs.list(f"{scope}/"):
            parsed = parse_station_path(name)
            if parsed is None:
                continue
            file_scope, _, file_duration = parsed
            if file_scope == scope and file_duration == duration:
                out.append(name)
        return out

    def check_writable(self) -> None:
        probe = ".write-check"
        self._blobs.put_bytes(probe, b"ok")
        self._blobs.delete(probe)

    def has_station_files(self, scope: str) -> bool:
        return any(parse_station_path(name) is not None for name in self._blobs.list(f"{scope}/"))

    def load(self, path: str) -> dict[str, Any]:
        return self._blobs.get_json(path)

    # -- aggregated ----------------------------------------------------------

    def aggregate_path(self, scope: str, duration: int, station_type: Optional[str] = None) -> str:
        if station_type is None:
            return area_path(scope, duration)
        return station_type_path(scope, station_type, duration)

    def put_aggregate(
        self,
        scope: str,
        duration: int,
        fc: Mapping[str, Any],
        *,
        station_type: Optional[str] = None,
    ) -> str:
        path = self.aggregate_path(scope, duration, station_type)
        self._blobs.put_json(path, fc)
        return path

    def get_aggregate(self, scope: str, duration: int, *, station_type: Optional[str] = None) -> dict[str, Any]:
        path = self.aggregate_path(scope, duration, station_type)
        try:
            return self._blobs.get_json(path)
        except NotFound:
            raise NotFound(f"No aggregated isochrone '{path}'") from None

    def list_aggregate_files(self, scope: str) -> list[str]:
        return [name for name in self._blobs.list(f"{scope}/") if is_aggregate_path(name)]

    def delete_aggregates(self, scope: str) -> DeleteReport:
        report = DeleteReport()
        for name in self.list_aggregate_files(scope):
            self._delete_one(name, report)
        return report

    def delete_scope(self, scope: str) -> DeleteReport:
        report = DeleteReport()
        for name in self._blobs.list(f"{scope}/"):
            self._delete_one(name, report)
        return report

    def _delete_one(self, path: str, report: DeleteReport) -> None:
        try:
            removed = self._blobs.delete(path)
        except OSError as exc:
            logger.warning("Failed to delete %s: %s", path, exc)
            report.failed.append(path)
            return
        if removed:
            logger.debug("Deleted %s", path)
            report.deleted.append(path)
        else:
            logger.info("Not found, nothing to delete: %s", path)
            report.missing.append(path)
