from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class AppSettings:
    name: str = "MetroProximity"


@dataclass(frozen=True)
class StorageSettings:
    # Root directory for blob containers (one sub-directory per container).
    blob_dir: Path
    # SQLite file holding the `area` and `station` tables.
    table_path: Path
    isochrone_container: str = "isochrone"


@dataclass(frozen=True)
class MapboxSettings:
    base_url: str
    access_token: Optional[str]
    profile: str = "walking"
    timeout_s: float = 30.0
    token_check_timeout_s: float = 10.0
    # Minimum spacing between consecutive isochrone calls (provider rate limit backpressure).
    min_request_interval_s: float = 0.1
    user_agent: str = "metroproximity/0.1.0"


@dataclass(frozen=True)
class OverpassSettings:
    url: str = "https://overpass-api.de/api/interpreter"
    timeout_s: float = 10.0
    query_timeout_s: int = 25
    user_agent: str = "metroproximity/0.1.0"


@dataclass(frozen=True)
class GenerationSettings:
    durations: tuple[int, ...]
    station_types: tuple[str, ...]
    developer_limit: int = 3


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    format: str
    file: Optional[Path] = None


@dataclass(frozen=True)
class ApiSettings:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(frozen=True)
class AppConfig:
    app: AppSettings
    storage: StorageSettings
    mapbox: MapboxSettings
    overpass: OverpassSettings
    generation: GenerationSettings
    logging: LoggingSettings
    api: ApiSettings
