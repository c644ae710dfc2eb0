from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

from shapely.geometry import MultiPolygon, Polygon, mapping, shape
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient
from shapely.ops import transform, unary_union
from shapely.validation import explain_validity

from metroproximity.errors import NoInputData


logger = logging.getLogger(__name__)

# Internally every geometry is (lon, lat), matching GeoJSON. Anything that arrives as
# (lat, lon) must go through one of the explicit converters below.
POLYGONAL_TYPES = ("Polygon", "MultiPolygon")


def is_valid(geometry: BaseGeometry) -> bool:
    return bool(geometry.is_valid)


def validity_reason(geometry: BaseGeometry) -> str:
    return explain_validity(geometry)


def repair(geometry: BaseGeometry) -> BaseGeometry:
    """
    Zero-distance buffer: the usual polygon-cleaning idiom.

    Resolves bow-ties and minor self-intersections without changing the area materially.
    Applying it to an already valid geometry returns an equal geometry.
    """

    return geometry.buffer(0)


def union(geometries: Sequence[BaseGeometry]) -> BaseGeometry:
    """
    Merge N >= 1 geometries into their set-union (possibly multi-part).

    A single input is returned as-is. For more inputs shapely's `unary_union` runs a cascaded
    union, which avoids pairwise O(N^2) merging when an area has many stations.
    """

    if not geometries:
        raise NoInputData("Cannot union an empty list of geometries")
    if len(geometries) == 1:
        return geometries[0]
    return unary_union(list(geometries))


def normalize_orientation(geometry: BaseGeometry) -> BaseGeometry:
    """
    Orient exterior rings counter-clockwise and holes clockwise (RFC 7946).
    """

    if isinstance(geometry, Polygon):
        return orient(geometry, sign=1.0)
    if isinstance(geometry, MultiPolygon):
        return MultiPolygon([orient(part, sign=1.0) for part in geometry.geoms])
    return geometry


def from_geojson(geom: Mapping[str, Any]) -> BaseGeometry:
    """
    Build a shapely geometry from a GeoJSON geometry object (lon, lat order).
    """

    if not isinstance(geom, Mapping):
        raise ValueError(f"Geometry must be an object, got {type(geom).__name__}")
    geom_type = geom.get("type")
    if geom_type not in POLYGONAL_TYPES:
        raise ValueError(f"Unsupported geometry type for isochrones: {geom_type}")
    if not geom.get("coordinates"):
        raise ValueError(f"Empty {geom_type} coordinates")
    return shape(geom)


def to_geojson(geometry: BaseGeometry) -> dict[str, Any]:
    out = mapping(normalize_orientation(geometry))
    return _listify(out)


def _listify(value: Any) -> Any:
    # `mapping()` yields nested tuples; JSON and equality checks in callers expect lists.
    if isinstance(value, dict):
        return {k: _listify(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_listify(v) for v in value]
    return value


def swap_axes(geometry: BaseGeometry) -> BaseGeometry:
    # (lat, lon) <-> (lon, lat); applying it twice is the identity.
    return transform(lambda x, y, z=None: (y, x), geometry)


def from_boundary_points(points: Iterable[Mapping[str, Any]]) -> Polygon:
    """
    Build a polygon from a provider boundary given as `{"latitude": .., "longitude": ..}` points.

    Reachable-range style providers return latitude first; we flip to (lon, lat) here,
    at the parse boundary, and nowhere else.
    """

    ring = [(float(p["longitude"]), float(p["latitude"])) for p in points]
    if len(ring) < 3:
        raise ValueError("A boundary needs at least 3 points")
    return Polygon(ring)


def to_boundary_points(polygon: Polygon) -> list[dict[str, float]]:
    coords = list(polygon.exterior.coords)
    return [{"latitude": float(lat), "longitude": float(lon)} for lon, lat in coords]


def lonlat_path(lat: float, lon: float) -> str:
    # Mapbox style URL segment: `{lon},{lat}`.
    return f"{lon:.6f},{lat:.6f}"


def feature_collection(geometry: BaseGeometry, properties: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": dict(properties),
                "geometry": to_geojson(geometry),
            }
        ],
    }


def geometries_from_feature_collection(fc: Mapping[str, Any]) -> list[BaseGeometry]:
    """
    Extract polygonal geometries from a FeatureCollection.

    Features without geometry are ignored; a non-polygonal geometry or a payload that is not a
    FeatureCollection raises `ValueError` so callers can skip the whole file.
    """

    if not isinstance(fc, Mapping) or fc.get("type") != "FeatureCollection":
        raise ValueError("GeoJSON must be a FeatureCollection")
    features = fc.get("features") or []
    if not isinstance(features, list):
        raise ValueError("FeatureCollection 'features' must be a list")
    out: list[BaseGeometry] = []
    for feature in features:
        if feature is None:
            continue
        if not isinstance(feature, Mapping):
            raise ValueError(f"Feature must be an object, got {type(feature).__name__}")
        geom = feature.get("geometry")
        if not geom:
            continue
        out.append(from_geojson(geom))
    return out
