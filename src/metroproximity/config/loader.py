from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from metroproximity.config.models import (
    ApiSettings,
    AppConfig,
    AppSettings,
    GenerationSettings,
    LoggingSettings,
    MapboxSettings,
    OverpassSettings,
    StorageSettings,
)
from metroproximity.schemas.core import AGGREGATED_STATION_TYPES, DURATIONS


# Provider pacing floor: consecutive isochrone calls are never spaced closer than this.
MIN_PROVIDER_INTERVAL_S = 0.1


def _as_path(value: str, *, base_dir: Path) -> Path:
    candidate = Path(value)
    return candidate if candidate.is_absolute() else (base_dir / candidate)


def _looks_like_placeholder(value: str) -> bool:
    # Config templates ship keys as `<your-token>`; treat those as unset.
    return "<" in value or ">" in value


def load_config(path: Optional[str | Path] = None, *, base_dir: Optional[Path] = None) -> AppConfig:
    """
    Load typed application config from JSON.

    - Path resolution is relative to `base_dir` (defaults to current working directory).
    - `.env` is loaded first so secrets such as `MAPBOX_ACCESS_TOKEN` can stay out of the JSON file.
    - A handful of environment variables override JSON values (see below).
    """

    load_dotenv(".env")

    config_path = Path(
        path
        or os.getenv("METROPROXIMITY_CONFIG_PATH", "config/default.json")
    ).resolve()
    base_dir = (base_dir or Path.cwd()).resolve()

    raw = json.loads(config_path.read_text(encoding="utf-8"))

    app_raw: Mapping[str, Any] = raw.get("app", {})
    app = AppSettings(name=str(app_raw.get("name", "MetroProximity")))

    storage_raw: Mapping[str, Any] = raw.get("storage", {})
    storage_dir_override = os.getenv("METROPROXIMITY_STORAGE_DIR")
    blob_dir_value = storage_dir_override or str(storage_raw.get("blob_dir", "data/blobs"))
    table_value = str(storage_raw.get("table_path", "data/tables.db"))
    if storage_dir_override:
        table_value = str(Path(storage_dir_override) / "tables.db")
    storage = StorageSettings(
        blob_dir=_as_path(blob_dir_value, base_dir=base_dir),
        table_path=_as_path(table_value, base_dir=base_dir),
        isochrone_container=str(storage_raw.get("isochrone_container", "isochrone")),
    )

    mapbox_raw: Mapping[str, Any] = raw.get("mapbox", {})
    token = os.getenv("MAPBOX_ACCESS_TOKEN") or mapbox_raw.get("access_token")
    if token is not None:
        token = str(token).strip()
        if not token or _looks_like_placeholder(token):
            token = None
    min_interval = float(mapbox_raw.get("min_request_interval_s", MIN_PROVIDER_INTERVAL_S))
    if min_interval < MIN_PROVIDER_INTERVAL_S:
        raise ValueError(
            f"mapbox.min_request_interval_s must be >= {MIN_PROVIDER_INTERVAL_S} (got {min_interval})"
        )
    mapbox = MapboxSettings(
        base_url=str(mapbox_raw.get("base_url", "https://api.mapbox.com")).rstrip("/"),
        access_token=token,
        profile=str(mapbox_raw.get("profile", "walking")),
        timeout_s=float(mapbox_raw.get("timeout_s", 30.0)),
        token_check_timeout_s=float(mapbox_raw.get("token_check_timeout_s", 10.0)),
        min_request_interval_s=min_interval,
        user_agent=f"{app.name}/0.1.0",
    )

    overpass_raw: Mapping[str, Any] = raw.get("overpass", {})
    overpass = OverpassSettings(
        url=str(overpass_raw.get("url", OverpassSettings.url)),
        timeout_s=float(overpass_raw.get("timeout_s", 10.0)),
        query_timeout_s=int(overpass_raw.get("query_timeout_s", 25)),
        user_agent=f"{app.name}/0.1.0",
    )

    generation_raw: Mapping[str, Any] = raw.get("generation", {})
    durations = tuple(int(d) for d in generation_raw.get("durations", DURATIONS))
    unknown_durations = [d for d in durations if d not in DURATIONS]
    if unknown_durations:
        raise ValueError(f"Unsupported generation.durations: {unknown_durations} (allowed: {list(DURATIONS)})")
    station_types = tuple(str(t) for t in generation_raw.get("station_types", AGGREGATED_STATION_TYPES))
    unknown_types = [t for t in station_types if t not in AGGREGATED_STATION_TYPES]
    if unknown_types:
        raise ValueError(f"Unsupported generation.station_types: {unknown_types}")
    generation = GenerationSettings(
        durations=durations,
        station_types=station_types,
        developer_limit=int(generation_raw.get("developer_limit", 3)),
    )

    logging_raw: Mapping[str, Any] = raw.get("logging", {})
    file_value = logging_raw.get("file")
    log_file = None if not file_value else _as_path(str(file_value), base_dir=base_dir)
    logging_settings = LoggingSettings(
        level=os.getenv("METROPROXIMITY_LOG_LEVEL") or str(logging_raw.get("level", "INFO")),
        format=str(logging_raw.get("format", "%(asctime)s %(levelname)s %(name)s - %(message)s")),
        file=log_file,
    )

    api_raw: Mapping[str, Any] = raw.get("api", {})
    api = ApiSettings(
        host=str(api_raw.get("host", "127.0.0.1")),
        port=int(api_raw.get("port", 8000)),
    )

    return AppConfig(
        app=app,
        storage=storage,
        mapbox=mapbox,
        overpass=overpass,
        generation=generation,
        logging=logging_settings,
        api=api,
    )
