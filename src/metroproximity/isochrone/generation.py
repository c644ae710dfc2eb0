from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Optional, Sequence

from metroproximity.errors import ProviderError
from metroproximity.ingestion.mapbox_isochrone import MapboxIsochroneClient
from metroproximity.isochrone.store import IsochroneStore
from metroproximity.isochrone.styling import style_station_isochrone
from metroproximity.schemas.core import DURATIONS, Station


logger = logging.getLogger(__name__)


@dataclass
class GenerationReport:
    station_id: str
    saved: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.saved) and not self.failed


class StationIsochroneGenerator:
    def __init__(
        self,
        client: MapboxIsochroneClient,
        store: IsochroneStore,
        *,
        durations: Sequence[int] = DURATIONS,
    ) -> None:
        self._client = client
        self._store = store
        self._durations = tuple(durations)

    def generate(
        self,
        scope: str,
        station: Station,
        *,
        durations: Optional[Sequence[int]] = None,
    ) -> GenerationReport:
        """
        Fetch, style and store every duration for one station.

        A failed duration is logged and recorded; later durations are still attempted.
        """

        report = GenerationReport(station_id=station.station_id)
        logger.info("Generating isochrones for %s (%s)", station.name, station.station_id)
        for duration in durations or self._durations:
            try:
                fc = self._client.fetch(station.lat, station.lon, duration)
                styled = style_station_isochrone(fc, station_type=station.station_type, duration=duration)
                path = self._store.put(scope, station.station_id, duration, styled)
            except ProviderError as exc:
                logger.error("%smin isochrone for %s failed (%s): %s", duration, station.name, exc.provider, exc)
                report.failed.append(duration)
                continue
            except OSError as exc:
                logger.error("Could not store %smin isochrone for %s: %s", duration, station.name, exc)
                report.failed.append(duration)
                continue
            logger.info("Saved %smin isochrone for %s to %s", duration, station.name, path)
            report.saved.append(duration)
        return report
