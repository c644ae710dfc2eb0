from __future__ import annotations

# `logging` records skipped (unnamed) nodes at debug level.
import logging
from typing import Any, Iterable, Optional

from metroproximity.config.models import OverpassSettings
from metroproximity.errors import InvalidResponse, ProviderUnavailable
# Overpass is queried through the same zero-retry session as Mapbox (no pacing: one call per area).
from metroproximity.ingestion.http_base import ProviderSession
from metroproximity.schemas.core import Station, normalize_station_type


logger = logging.getLogger(__name__)

PROVIDER = "overpass"


def build_station_query(*, lat: float, lon: float, radius_m: float, timeout_s: int = 25) -> str:
    """
    Build an Overpass QL query for transit stops around a point.

    Rail stations (including halts), tram stops and bus stops served by trolleybuses.
    """

    around = f"around:{int(round(radius_m))},{lat},{lon}"
    selectors = [
        f'node["railway"="station"]({around});',
        f'node["railway"="halt"]({around});',
        f'node["railway"="tram_stop"]({around});',
        f'node["highway"="bus_stop"]["trolleybus"="yes"]({around});',
    ]
    body = "\n".join(f"  {sel}" for sel in selectors)
    return f"""
[out:json][timeout:{int(timeout_s)}];
(
{body}
);
out body;
""".strip()


class OverpassClient:
    def __init__(self, settings: OverpassSettings) -> None:
        self._settings = settings
        self._http = ProviderSession(
            provider=PROVIDER,
            timeout_s=settings.timeout_s,
            user_agent=settings.user_agent,
        )

    def query(self, query: str) -> dict[str, Any]:
        # Overpass expects the QL text as a form field named `data`.
        resp = self._http.request("POST", self._settings.url, data={"data": query})
        if not resp.ok:
            raise ProviderUnavailable(
                f"Overpass request failed ({resp.status_code}): {resp.text[:500]}",
                provider=PROVIDER,
                status_code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise InvalidResponse("Overpass returned a non-JSON body", provider=PROVIDER) from exc
        if not isinstance(data, dict) or not isinstance(data.get("elements"), list):
            raise InvalidResponse("Overpass response has no 'elements' list", provider=PROVIDER)
        return data

    def stations_around(
        self,
        *,
        scope: str,
        lat: float,
        lon: float,
        radius_m: float,
        developer_mode: bool = False,
        developer_limit: int = 3,
    ) -> list[Station]:
        q = build_station_query(lat=lat, lon=lon, radius_m=radius_m, timeout_s=self._settings.query_timeout_s)
        data = self.query(q)
        return elements_to_stations(
            data["elements"],
            scope=scope,
            developer_mode=developer_mode,
            developer_limit=developer_limit,
        )

    def close(self) -> None:
        self._http.close()


def wikipedia_link(tag: Optional[str]) -> Optional[str]:
    """
    Turn an OSM `wikipedia` tag into a URL.

    `it:Roma Termini` -> `https://it.wikipedia.org/wiki/Roma Termini`. Full URLs and values
    without a language prefix are kept as-is.
    """

    if not tag:
        return None
    value = tag.strip()
    if not value:
        return None
    if value.startswith(("http://", "https://")):
        return value
    lang, sep, title = value.partition(":")
    if not sep:
        return value
    return f"https://{lang.strip()}.wikipedia.org/wiki/{title.strip()}"


def station_type_from_tags(tags: dict[str, Any]) -> str:
    railway = tags.get("railway")
    if railway:
        return normalize_station_type(str(railway))
    # Only trolleybus bus stops are selected by the query without a `railway` tag.
    if str(tags.get("trolleybus", "")).lower() == "yes":
        return "trolleybus"
    return "undefined"


def elements_to_stations(
    elements: Iterable[dict[str, Any]],
    *,
    scope: str,
    developer_mode: bool = False,
    developer_limit: int = 3,
) -> list[Station]:
    stations: list[Station] = []
    kept_per_type: dict[str, int] = {}
    for el in elements:
        el_id = el.get("id")
        lat = el.get("lat")
        lon = el.get("lon")
        if el_id is None or lat is None or lon is None:
            continue

        tags = el.get("tags") or {}
        name = tags.get("name")
        if not name:
            logger.debug("Skipping unnamed node %s", el_id)
            continue

        station_type = station_type_from_tags(tags)
        if developer_mode and station_type in ("station", "tram_stop"):
            if kept_per_type.get(station_type, 0) >= developer_limit:
                continue
            kept_per_type[station_type] = kept_per_type.get(station_type, 0) + 1

        stations.append(
            Station(
                station_id=str(el_id),
                scope=scope,
                name=str(name),
                lat=float(lat),
                lon=float(lon),
                station_type=station_type,
                wikipedia_link=wikipedia_link(tags.get("wikipedia")),
            )
        )
    return stations
