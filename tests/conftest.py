from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import pytest


def pytest_configure() -> None:
    """
    Keep a `src/` layout while allowing `pytest` to run without requiring an editable install.
    """

    project_root = Path(__file__).resolve().parents[1]
    src_path = project_root / "src"
    sys.path.insert(0, str(src_path))


_ENV_VARS = (
    "MAPBOX_ACCESS_TOKEN",
    "METROPROXIMITY_CONFIG_PATH",
    "METROPROXIMITY_STORAGE_DIR",
    "METROPROXIMITY_LOG_LEVEL",
)


def square_fc(lon: float, lat: float, half_size: float, properties: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Single-feature collection with an axis-aligned square around (lon, lat), CCW exterior ring.
    """

    ring = [
        [lon - half_size, lat - half_size],
        [lon + half_size, lat - half_size],
        [lon + half_size, lat + half_size],
        [lon - half_size, lat + half_size],
        [lon - half_size, lat - half_size],
    ]
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": dict(properties or {}),
                "geometry": {"type": "Polygon", "coordinates": [ring]},
            }
        ],
    }


@pytest.fixture
def clean_env(monkeypatch) -> None:
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config_path(tmp_path, clean_env) -> Path:
    cfg = {
        "app": {"name": "MetroProximityTest"},
        "storage": {
            "blob_dir": str(tmp_path / "blobs"),
            "table_path": str(tmp_path / "tables.db"),
            "isochrone_container": "isochrone",
        },
        "mapbox": {
            "base_url": "https://mapbox.test",
            "access_token": "<mapbox-access-token>",
            "timeout_s": 30,
            "token_check_timeout_s": 10,
            "min_request_interval_s": 0.1,
        },
        "overpass": {"url": "https://overpass.test/api/interpreter", "timeout_s": 10},
        "generation": {
            "durations": [5, 10, 15, 20, 30],
            "station_types": ["station", "tram_stop", "trolleybus"],
            "developer_limit": 3,
        },
        "logging": {"level": "INFO", "format": "%(levelname)s %(name)s %(message)s"},
        "api": {"host": "127.0.0.1", "port": 8000},
    }
    path = tmp_path / "config.json"
    path.write_text(json.dumps(cfg), encoding="utf-8")
    return path
