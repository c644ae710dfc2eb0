from __future__ import annotations

import logging
from pathlib import Path
import sqlite3
from typing import Iterable, Optional

import pandas as pd

from metroproximity.schemas.core import Area, AreaKey, Station


logger = logging.getLogger(__name__)


def _ensure_schema(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS area (
          country TEXT NOT NULL,
          area_id TEXT NOT NULL,
          display_name TEXT NOT NULL,
          lat REAL NOT NULL,
          lon REAL NOT NULL,
          diameter_m INTEGER NOT NULL,
          PRIMARY KEY (country, area_id)
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS station (
          scope TEXT NOT NULL,
          station_id TEXT NOT NULL,
          name TEXT NOT NULL,
          lat REAL NOT NULL,
          lon REAL NOT NULL,
          station_type TEXT NOT NULL,
          wikipedia_link TEXT,
          PRIMARY KEY (scope, station_id)
        )
        """
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_station_scope_type ON station(scope, station_type)")
    conn.commit()


def _optional_str(value: object) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    return str(value)


class SqliteTableStore:
    """
    `area` and `station` tables in a single SQLite file.

    Areas are keyed by (country, area_id); stations are partitioned by area scope and keyed by
    the provider's station id. Writes are full-row replaces.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            _ensure_schema(conn)
        finally:
            conn.close()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self._path))

    def _query(self, sql: str, params: Iterable[object] = ()) -> pd.DataFrame:
        conn = self._connect()
        try:
            return pd.read_sql_query(sql, conn, params=list(params))
        finally:
            conn.close()

    def _execute(self, sql: str, params: Iterable[object] = ()) -> int:
        conn = self._connect()
        try:
            cur = conn.execute(sql, tuple(params))
            conn.commit()
            return cur.rowcount
        finally:
            conn.close()

    # -- areas ---------------------------------------------------------------

    def upsert_area(self, area: Area) -> None:
        self._execute(
            "INSERT OR REPLACE INTO area (country, area_id, display_name, lat, lon, diameter_m) VALUES (?, ?, ?, ?, ?, ?)",
            (area.key.country, area.key.area_id, area.display_name, area.lat, area.lon, int(area.diameter_m)),
        )

    def get_area(self, key: AreaKey) -> Optional[Area]:
        df = self._query(
            "SELECT * FROM area WHERE country = ? AND area_id = ?",
            (key.country, key.area_id),
        )
        if df.empty:
            return None
        return self._row_to_area(df.iloc[0])

    def get_area_by_scope(self, scope: str) -> Optional[Area]:
        for area in self.list_areas():
            if area.scope == scope.strip().lower():
                return area
        return None

    def list_areas(self) -> list[Area]:
        df = self._query("SELECT * FROM area ORDER BY country, area_id")
        return [self._row_to_area(row) for _, row in df.iterrows()]

    def delete_area(self, key: AreaKey) -> bool:
        return self._execute(
            "DELETE FROM area WHERE country = ? AND area_id = ?",
            (key.country, key.area_id),
        ) > 0

    @staticmethod
    def _row_to_area(row: pd.Series) -> Area:
        return Area(
            key=AreaKey(country=str(row["country"]), area_id=str(row["area_id"])),
            display_name=str(row["display_name"]),
            lat=float(row["lat"]),
            lon=float(row["lon"]),
            diameter_m=int(row["diameter_m"]),
        )

    # -- stations ------------------------------------------------------------

    def upsert_station(self, station: Station) -> None:
        self._execute(
            "INSERT OR REPLACE INTO station (scope, station_id, name, lat, lon, station_type, wikipedia_link) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                station.scope,
                station.station_id,
                station.name,
                station.lat,
                station.lon,
                station.station_type,
                station.wikipedia_link,
            ),
        )

    def replace_stations(self, scope: str, stations: Iterable[Station]) -> int:
        """
        Delete every station of `scope`, then insert `stations`. Returns the number inserted.
        """

        rows = [
            (s.scope, s.station_id, s.name, s.lat, s.lon, s.station_type, s.wikipedia_link)
            for s in stations
        ]
        conn = self._connect()
        try:
            conn.execute("DELETE FROM station WHERE scope = ?", (scope,))
            conn.executemany(
                "INSERT OR REPLACE INTO station (scope, station_id, name, lat, lon, station_type, wikipedia_link) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
            conn.commit()
        finally:
            conn.close()
        return len(rows)

    def get_station(self, scope: str, station_id: str) -> Optional[Station]:
        df = self._query(
            "SELECT * FROM station WHERE scope = ? AND station_id = ?",
            (scope, str(station_id)),
        )
        if df.empty:
            return None
        return self._row_to_station(df.iloc[0])

    def list_stations(self, scope: str, *, station_type: Optional[str] = None) -> list[Station]:
        if station_type is None:
            df = self._query("SELECT * FROM station WHERE scope = ? ORDER BY name", (scope,))
        else:
            df = self._query(
                "SELECT * FROM station WHERE scope = ? AND station_type = ? ORDER BY name",
                (scope, station_type),
            )
        return [self._row_to_station(row) for _, row in df.iterrows()]

    def station_counts(self) -> dict[str, int]:
        df = self._query("SELECT scope, COUNT(*) AS n FROM station GROUP BY scope")
        return {str(row["scope"]): int(row["n"]) for _, row in df.iterrows()}

    def delete_station(self, scope: str, station_id: str) -> bool:
        return self._execute(
            "DELETE FROM station WHERE scope = ? AND station_id = ?",
            (scope, str(station_id)),
        ) > 0

    def delete_stations(self, scope: str) -> int:
        n = self._execute("DELETE FROM station WHERE scope = ?", (scope,))
        logger.debug("Deleted %s stations for %s", n, scope)
        return n

    @staticmethod
    def _row_to_station(row: pd.Series) -> Station:
        return Station(
            station_id=str(row["station_id"]),
            scope=str(row["scope"]),
            name=str(row["name"]),
            lat=float(row["lat"]),
            lon=float(row["lon"]),
            station_type=str(row["station_type"]),
            wikipedia_link=_optional_str(row["wikipedia_link"]),
        )
