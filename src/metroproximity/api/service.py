from __future__ import annotations

import logging
from typing import Any, Optional

from metroproximity.config.models import AppConfig
from metroproximity.errors import AreaNotFound
from metroproximity.isochrone.paths import check_duration
from metroproximity.isochrone.store import IsochroneStore
from metroproximity.repository.blob_store import LocalBlobStore
from metroproximity.repository.table_store import SqliteTableStore
from metroproximity.schemas.core import AGGREGATED_STATION_TYPES, Area, Station, normalize_station_type


logger = logging.getLogger(__name__)


class AreaService:
    """
    Read-only view over areas, stations and stored isochrones.

    Routes stay focused on HTTP concerns; lookups and `NotFound` semantics live here.
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._tables = SqliteTableStore(config.storage.table_path)
        self._store = IsochroneStore(LocalBlobStore(config.storage.blob_dir, config.storage.isochrone_container))

    @property
    def config(self) -> AppConfig:
        return self._config

    def list_areas(self) -> list[Area]:
        return self._tables.list_areas()

    def get_area(self, scope: str) -> Area:
        area = self._tables.get_area_by_scope(scope)
        if area is None:
            raise AreaNotFound(scope)
        return area

    def list_stations(self, scope: str) -> list[Station]:
        area = self.get_area(scope)
        return self._tables.list_stations(area.scope)

    def area_isochrone(self, scope: str, duration: int, *, station_type: Optional[str] = None) -> dict[str, Any]:
        check_duration(duration)
        normalized = None
        if station_type is not None:
            normalized = normalize_station_type(station_type)
            if normalized not in AGGREGATED_STATION_TYPES:
                raise ValueError(f"Unsupported station type: {station_type}")
        area = self.get_area(scope)
        return self._store.get_aggregate(area.scope, duration, station_type=normalized)

    def station_isochrone(self, scope: str, station_id: str, duration: int) -> dict[str, Any]:
        check_duration(duration)
        area = self.get_area(scope)
        return self._store.get(area.scope, station_id, duration)
