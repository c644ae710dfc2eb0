from __future__ import annotations

from dataclasses import dataclass

from metroproximity.config.models import AppConfig
from metroproximity.errors import AreaNotFound, StationNotFound
from metroproximity.ingestion.mapbox_isochrone import MapboxIsochroneClient
from metroproximity.ingestion.osm_overpass import OverpassClient
from metroproximity.isochrone.aggregation import AggregationOrchestrator
from metroproximity.isochrone.generation import StationIsochroneGenerator
from metroproximity.isochrone.store import IsochroneStore
from metroproximity.repository.blob_store import LocalBlobStore
from metroproximity.repository.table_store import SqliteTableStore
from metroproximity.schemas.core import Area, AreaKey, Station


@dataclass
class GeneratorContext:
    """
    Everything a generator command needs, built once from config.
    """

    config: AppConfig
    tables: SqliteTableStore
    store: IsochroneStore
    aggregator: AggregationOrchestrator
    overpass: OverpassClient
    mapbox: MapboxIsochroneClient
    generator: StationIsochroneGenerator

    def require_area(self, name: str) -> Area:
        key = AreaKey.parse(name)
        area = self.tables.get_area(key)
        if area is None:
            raise AreaNotFound(key.name)
        return area

    def require_station(self, area: Area, station_id: str) -> Station:
        station = self.tables.get_station(area.scope, station_id)
        if station is None:
            raise StationNotFound(area.key.name, station_id)
        return station

    def close(self) -> None:
        self.overpass.close()
        self.mapbox.close()


def build_context(config: AppConfig) -> GeneratorContext:
    tables = SqliteTableStore(config.storage.table_path)
    store = IsochroneStore(LocalBlobStore(config.storage.blob_dir, config.storage.isochrone_container))
    mapbox = MapboxIsochroneClient(config.mapbox)
    return GeneratorContext(
        config=config,
        tables=tables,
        store=store,
        aggregator=AggregationOrchestrator(
            store,
            tables,
            durations=config.generation.durations,
            station_types=config.generation.station_types,
        ),
        overpass=OverpassClient(config.overpass),
        mapbox=mapbox,
        generator=StationIsochroneGenerator(mapbox, store, durations=config.generation.durations),
    )
