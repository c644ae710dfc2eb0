from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from metroproximity.schemas.core import normalize_station_type


STATION_TYPE_COLORS: dict[str, str] = {
    "station": "#22c55e",
    "tram_stop": "#eab308",
    "trolleybus": "#3b82f6",
}
UNKNOWN_COLOR = "#6b7280"
AREA_COLOR = "#3b82f6"


@dataclass(frozen=True)
class Style:
    fill: str
    fill_opacity: float
    stroke_width: int

    def as_properties(self) -> dict[str, Any]:
        return {
            "fill": self.fill,
            "stroke": self.fill,
            "fill-opacity": self.fill_opacity,
            "stroke-width": self.stroke_width,
        }


def color_for(station_type: Optional[str]) -> str:
    return STATION_TYPE_COLORS.get(normalize_station_type(station_type), UNKNOWN_COLOR)


def station_style(station_type: Optional[str], duration: int) -> Style:
    # Only the outermost (30 min) ring gets an outline on the per-station maps.
    return Style(fill=color_for(station_type), fill_opacity=0.1, stroke_width=2 if duration == 30 else 0)


def station_type_style(station_type: str) -> Style:
    return Style(fill=color_for(station_type), fill_opacity=0.2, stroke_width=2)


def area_style() -> Style:
    return Style(fill=AREA_COLOR, fill_opacity=0.15, stroke_width=2)


def railway_type_label(station_type: Optional[str]) -> str:
    normalized = normalize_station_type(station_type)
    return "unknown" if normalized == "undefined" else normalized


def style_station_isochrone(
    fc: Mapping[str, Any],
    *,
    station_type: Optional[str],
    duration: int,
) -> dict[str, Any]:
    """
    Add per-station styling to a provider FeatureCollection.

    Provider properties (`contour`, `metric`, ...) are kept; styling keys win on conflict.
    """

    style = station_style(station_type, duration).as_properties()
    style["railway-type"] = railway_type_label(station_type)
    features = []
    for feature in fc.get("features") or []:
        props = dict(feature.get("properties") or {})
        props.update(style)
        features.append({"type": "Feature", "properties": props, "geometry": feature.get("geometry")})
    return {"type": "FeatureCollection", "features": features}
