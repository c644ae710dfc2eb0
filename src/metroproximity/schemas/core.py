from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional


StationType = Literal["station", "tram_stop", "trolleybus", "undefined"]
ScopeKind = Literal["area", "station-type"]

# Every per-station isochrone is generated for each of these walking budgets (minutes).
DURATIONS: tuple[int, ...] = (5, 10, 15, 20, 30)

# Station types that get their own aggregated coverage map.
AGGREGATED_STATION_TYPES: tuple[str, ...] = ("station", "tram_stop", "trolleybus")

STATION_TYPES: tuple[str, ...] = AGGREGATED_STATION_TYPES + ("undefined",)


def normalize_station_type(value: Optional[str]) -> str:
    """
    Map a raw OSM `railway` tag (or stored value) onto the station taxonomy.

    `halt` is a minor rail stop and is grouped with `station`.
    """

    if not value:
        return "undefined"
    v = value.strip().lower().replace("-", "_")
    if v in ("station", "halt"):
        return "station"
    if v == "tram_stop":
        return "tram_stop"
    if v in ("trolleybus", "trolleybus_stop"):
        return "trolleybus"
    return "undefined"


@dataclass(frozen=True)
class AreaKey:
    country: str
    area_id: str

    def __post_init__(self) -> None:
        # Keys are case-normalized everywhere (table keys and blob paths).
        object.__setattr__(self, "country", self.country.strip().lower())
        object.__setattr__(self, "area_id", self.area_id.strip().lower())
        if not self.country or not self.area_id:
            raise ValueError("Area key requires a country and an area id")
        if "/" in self.country or "/" in self.area_id:
            raise ValueError(f"Area key parts must not contain '/': {self.country}/{self.area_id}")

    @staticmethod
    def parse(name: str) -> "AreaKey":
        """
        Parse the operator form `country/area` (a bare `area` maps to country `noarea`).
        """

        raw = name.strip()
        if "/" in raw:
            country, _, area_id = raw.partition("/")
            return AreaKey(country=country, area_id=area_id)
        return AreaKey(country="noarea", area_id=raw)

    @property
    def scope(self) -> str:
        # Partition key for stations and prefix for every isochrone blob of the area.
        return f"{self.country}-{self.area_id}"

    @property
    def name(self) -> str:
        return f"{self.country}/{self.area_id}"


@dataclass(frozen=True)
class Area:
    key: AreaKey
    display_name: str
    lat: float
    lon: float
    diameter_m: int

    @property
    def scope(self) -> str:
        return self.key.scope


@dataclass(frozen=True)
class Station:
    station_id: str
    scope: str
    name: str
    lat: float
    lon: float
    station_type: str = "undefined"
    wikipedia_link: Optional[str] = None
