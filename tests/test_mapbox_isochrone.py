from __future__ import annotations

import json
import logging
from typing import Any

import pytest
import requests

from metroproximity.config.models import MapboxSettings
from metroproximity.errors import InvalidResponse, ProviderTimeout, ProviderUnavailable, Unauthorized
from metroproximity.ingestion.http_base import _RateLimiter
from metroproximity.ingestion.mapbox_isochrone import MapboxIsochroneClient


VALID_BODY = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "properties": {"contour": 10, "metric": "time", "fill": "#bf4040"},
            "geometry": {
                "type": "Polygon",
                "coordinates": [[[12.49, 41.90], [12.51, 41.90], [12.51, 41.92], [12.49, 41.90]]],
            },
        }
    ],
}


def _response(status: int, body: Any) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    return resp


def _client(
    monkeypatch, outcome: Any, *, token: str | None = "pk.secret"
) -> tuple[MapboxIsochroneClient, list[tuple[str, float]]]:
    client = MapboxIsochroneClient(
        MapboxSettings(base_url="https://mapbox.test", access_token=token),
        rate_limiter=_RateLimiter(min_interval_s=0.0),
    )
    calls: list[tuple[str, float]] = []

    def fake_request(method, url, **kwargs):  # type: ignore[no-untyped-def]
        calls.append((url, kwargs["timeout"]))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(client._http._session, "request", fake_request)
    return client, calls


def test_fetch_returns_single_feature_collection(monkeypatch) -> None:
    client, calls = _client(monkeypatch, _response(200, VALID_BODY))

    fc = client.fetch(41.9028, 12.4964, 10)

    assert fc["type"] == "FeatureCollection"
    assert len(fc["features"]) == 1
    assert fc["features"][0]["properties"]["contour"] == 10
    assert fc["features"][0]["geometry"]["coordinates"] == VALID_BODY["features"][0]["geometry"]["coordinates"]
    assert calls == [
        (
            "https://mapbox.test/isochrone/v1/mapbox/walking/12.496400,41.902800"
            "?contours_minutes=10&polygons=true&access_token=pk.secret",
            30.0,
        )
    ]


def test_fetch_does_not_log_the_token(monkeypatch, caplog) -> None:
    client, _ = _client(monkeypatch, _response(200, VALID_BODY))
    with caplog.at_level(logging.DEBUG):
        client.fetch(41.9, 12.5, 5)
    assert caplog.records
    assert all("pk.secret" not in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize("status", [401, 403])
def test_auth_failures_map_to_unauthorized(monkeypatch, status: int) -> None:
    client, _ = _client(monkeypatch, _response(status, {"message": "Not Authorized - Invalid Token"}))
    with pytest.raises(Unauthorized) as excinfo:
        client.fetch(41.9, 12.5, 5)
    assert excinfo.value.status_code == status


def test_missing_token_fails_without_a_request(monkeypatch) -> None:
    client, calls = _client(monkeypatch, _response(200, VALID_BODY), token=None)
    with pytest.raises(Unauthorized):
        client.fetch(41.9, 12.5, 5)
    assert calls == []


def test_server_error_maps_to_unavailable(monkeypatch) -> None:
    client, _ = _client(monkeypatch, _response(503, b"upstream down"))
    with pytest.raises(ProviderUnavailable):
        client.fetch(41.9, 12.5, 5)


def test_timeout_maps_to_provider_timeout(monkeypatch) -> None:
    client, _ = _client(monkeypatch, requests.Timeout("read timed out"))
    with pytest.raises(ProviderTimeout):
        client.fetch(41.9, 12.5, 5)


def test_connection_error_maps_to_unavailable(monkeypatch) -> None:
    client, _ = _client(monkeypatch, requests.ConnectionError("refused"))
    with pytest.raises(ProviderUnavailable):
        client.fetch(41.9, 12.5, 5)


def test_non_json_body_is_invalid_response(monkeypatch) -> None:
    client, _ = _client(monkeypatch, _response(200, b"<html>oops</html>"))
    with pytest.raises(InvalidResponse):
        client.fetch(41.9, 12.5, 5)


@pytest.mark.parametrize("status", [200, 422])
def test_missing_features_is_invalid_response_regardless_of_status(monkeypatch, status: int) -> None:
    client, _ = _client(monkeypatch, _response(status, {"message": "No valid isochrone", "code": "NoSegment"}))
    with pytest.raises(InvalidResponse):
        client.fetch(41.9, 12.5, 5)


def test_schema_mismatch_is_invalid_response(monkeypatch) -> None:
    body = {"type": "FeatureCollection", "features": [{"type": "Feature", "geometry": {"type": "Point"}}]}
    client, _ = _client(monkeypatch, _response(200, body))
    with pytest.raises(InvalidResponse):
        client.fetch(41.9, 12.5, 5)


def test_unsupported_duration_is_rejected_before_any_request(monkeypatch) -> None:
    client, calls = _client(monkeypatch, _response(200, VALID_BODY))
    with pytest.raises(ValueError):
        client.fetch(41.9, 12.5, 12)
    assert calls == []


def test_check_token(monkeypatch) -> None:
    client, calls = _client(monkeypatch, _response(200, {"code": "TokenValid"}))
    assert client.check_token() is True
    assert calls == [("https://mapbox.test/tokens/v2?access_token=pk.secret", 10.0)]


def test_check_token_rejected(monkeypatch) -> None:
    client, _ = _client(monkeypatch, _response(401, {"code": "TokenInvalid"}))
    assert client.check_token() is False


def test_check_token_without_token() -> None:
    client = MapboxIsochroneClient(MapboxSettings(base_url="https://mapbox.test", access_token=None))
    assert client.check_token() is False


@pytest.mark.parametrize("body", [["TokenValid"], "TokenValid", None])
def test_check_token_with_non_object_body(monkeypatch, body) -> None:
    client, _ = _client(monkeypatch, _response(200, body))
    assert client.check_token() is False
