from __future__ import annotations

import re
from typing import Optional

from metroproximity.schemas.core import DURATIONS


# `{scope}/{station_id}/{d}min.json`: exactly two separators.
_STATION_FILE_RE = re.compile(r"^(?P<scope>[^/]+)/(?P<station_id>[^/]+)/(?P<duration>\d+)min\.json$")
# `{scope}/{d}min.json` and `{scope}/{type}-{d}min.json`.
_AGGREGATE_FILE_RE = re.compile(r"^(?P<scope>[^/]+)/(?:(?P<station_type>[a-z_]+)-)?(?P<duration>\d+)min\.json$")


def check_duration(duration: int) -> int:
    if duration not in DURATIONS:
        raise ValueError(f"Invalid duration {duration}; allowed: {list(DURATIONS)}")
    return int(duration)


def station_path(scope: str, station_id: str, duration: int) -> str:
    return f"{scope}/{station_id}/{check_duration(duration)}min.json".lower()


def station_type_path(scope: str, station_type: str, duration: int) -> str:
    return f"{scope}/{station_type}-{check_duration(duration)}min.json".lower()


def area_path(scope: str, duration: int) -> str:
    return f"{scope}/{check_duration(duration)}min.json".lower()


def parse_station_path(path: str) -> Optional[tuple[str, str, int]]:
    m = _STATION_FILE_RE.match(path)
    if m is None:
        return None
    return m.group("scope"), m.group("station_id"), int(m.group("duration"))


def is_aggregate_path(path: str) -> bool:
    return _AGGREGATE_FILE_RE.match(path) is not None
