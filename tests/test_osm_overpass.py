from __future__ import annotations

import json

import pytest
import requests

from metroproximity.config.models import OverpassSettings
from metroproximity.errors import InvalidResponse, ProviderUnavailable
from metroproximity.ingestion.osm_overpass import (
    OverpassClient,
    build_station_query,
    elements_to_stations,
    wikipedia_link,
)


SCOPE = "it-roma"


def _node(node_id: int, tags: dict, lat: float = 41.9, lon: float = 12.5) -> dict:
    return {"type": "node", "id": node_id, "lat": lat, "lon": lon, "tags": tags}


def test_query_selects_every_supported_stop_kind() -> None:
    q = build_station_query(lat=41.9028, lon=12.4964, radius_m=2500.4, timeout_s=25)

    assert q.startswith("[out:json][timeout:25];")
    assert q.endswith("out body;")
    for selector in (
        '["railway"="station"]',
        '["railway"="halt"]',
        '["railway"="tram_stop"]',
        '["highway"="bus_stop"]["trolleybus"="yes"]',
    ):
        assert selector in q
    assert "around:2500,41.9028,12.4964" in q


def test_elements_become_typed_stations() -> None:
    elements = [
        _node(1, {"railway": "station", "name": "Roma Termini", "wikipedia": "it:Stazione di Roma Termini"}),
        _node(2, {"railway": "halt", "name": "Roma Tuscolana"}),
        _node(3, {"railway": "tram_stop", "name": "Porta Maggiore"}),
        _node(4, {"highway": "bus_stop", "trolleybus": "yes", "name": "Nazionale"}),
    ]

    stations = elements_to_stations(elements, scope=SCOPE)

    assert [s.station_id for s in stations] == ["1", "2", "3", "4"]
    assert [s.station_type for s in stations] == ["station", "station", "tram_stop", "trolleybus"]
    assert all(s.scope == SCOPE for s in stations)
    assert stations[0].wikipedia_link == "https://it.wikipedia.org/wiki/Stazione di Roma Termini"
    assert stations[1].wikipedia_link is None


def test_unnamed_and_incomplete_nodes_are_skipped() -> None:
    elements = [
        _node(1, {"railway": "station"}),
        _node(2, {"railway": "station", "name": ""}),
        {"type": "node", "id": 3, "tags": {"railway": "station", "name": "No coords"}},
        _node(4, {"railway": "station", "name": "Kept"}),
    ]

    stations = elements_to_stations(elements, scope=SCOPE)
    assert [s.name for s in stations] == ["Kept"]


def test_developer_mode_limits_rail_and_tram_per_type() -> None:
    elements = [_node(i, {"railway": "station", "name": f"S{i}"}) for i in range(1, 6)]
    elements += [_node(i, {"railway": "tram_stop", "name": f"T{i}"}) for i in range(10, 15)]
    elements += [_node(i, {"highway": "bus_stop", "trolleybus": "yes", "name": f"B{i}"}) for i in range(20, 25)]

    stations = elements_to_stations(elements, scope=SCOPE, developer_mode=True, developer_limit=2)

    by_type: dict[str, int] = {}
    for s in stations:
        by_type[s.station_type] = by_type.get(s.station_type, 0) + 1
    assert by_type == {"station": 2, "tram_stop": 2, "trolleybus": 5}


@pytest.mark.parametrize(
    ("tag", "expected"),
    [
        (None, None),
        ("   ", None),
        ("https://en.wikipedia.org/wiki/Milano_Centrale", "https://en.wikipedia.org/wiki/Milano_Centrale"),
        ("Milano Centrale", "Milano Centrale"),
        ("de:Köln Hauptbahnhof", "https://de.wikipedia.org/wiki/Köln Hauptbahnhof"),
    ],
)
def test_wikipedia_link(tag, expected) -> None:
    assert wikipedia_link(tag) == expected


def _response(status: int, body) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    return resp


def _client(monkeypatch, resp: requests.Response) -> tuple[OverpassClient, list[dict]]:
    client = OverpassClient(OverpassSettings(url="https://overpass.test/api/interpreter"))
    calls: list[dict] = []

    def fake_request(method, url, **kwargs):  # type: ignore[no-untyped-def]
        calls.append({"method": method, "url": url, **kwargs})
        return resp

    monkeypatch.setattr(client._http._session, "request", fake_request)
    return client, calls


def test_stations_around_posts_the_query(monkeypatch) -> None:
    body = {"elements": [_node(7, {"railway": "station", "name": "Ostiense"})]}
    client, calls = _client(monkeypatch, _response(200, body))

    stations = client.stations_around(scope=SCOPE, lat=41.87, lon=12.48, radius_m=1000)

    assert [s.name for s in stations] == ["Ostiense"]
    assert len(calls) == 1
    assert calls[0]["method"] == "POST"
    assert calls[0]["url"] == "https://overpass.test/api/interpreter"
    assert "around:1000,41.87,12.48" in calls[0]["data"]["data"]


def test_overpass_overload_is_unavailable(monkeypatch) -> None:
    client, _ = _client(monkeypatch, _response(504, b"Gateway Timeout"))
    with pytest.raises(ProviderUnavailable):
        client.query("[out:json];node(1);out;")


def test_overpass_body_without_elements_is_invalid(monkeypatch) -> None:
    client, _ = _client(monkeypatch, _response(200, {"remark": "runtime error"}))
    with pytest.raises(InvalidResponse):
        client.query("[out:json];node(1);out;")
