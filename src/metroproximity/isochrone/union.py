from __future__ import annotations

import logging
from typing import Any, Optional, Sequence
import warnings

from shapely.geometry.base import BaseGeometry

from metroproximity.errors import GeometryInvalid, NoInputData
from metroproximity.gis import geometry as geo
from metroproximity.isochrone.styling import area_style, railway_type_label, station_type_style
from metroproximity.schemas.core import ScopeKind


logger = logging.getLogger(__name__)


def merge(geometries: Sequence[BaseGeometry], *, label: str = "") -> BaseGeometry:
    """
    Union + validity check + one repair attempt.

    A result that is still invalid after the repair is returned anyway; the caller gets a
    `GeometryInvalid` warning instead of an exception.
    """

    if not geometries:
        raise NoInputData(f"No geometries to union{f' for {label}' if label else ''}")

    merged = geo.union(geometries)
    if geo.is_valid(merged):
        return merged

    logger.warning("Union result for %s is invalid (%s); repairing", label or "input", geo.validity_reason(merged))
    repaired = geo.repair(merged)
    if not geo.is_valid(repaired):
        reason = geo.validity_reason(repaired)
        message = f"Union result for {label or 'input'} is still invalid after repair: {reason}"
        logger.warning("%s", message, extra={"category": GeometryInvalid.__name__})
        warnings.warn(message, GeometryInvalid, stacklevel=2)
    return repaired


def aggregate(
    geometries: Sequence[BaseGeometry],
    scope_kind: ScopeKind,
    scope_tag: Optional[str],
    duration: int,
) -> dict[str, Any]:
    """
    Union the geometries of one scope and wrap them as a styled single-feature collection.

    `scope_kind="area"` produces the area-wide map (`scope_tag` is informational only);
    `scope_kind="station-type"` expects the station type in `scope_tag`.
    """

    if scope_kind == "station-type":
        if not scope_tag:
            raise ValueError("A station-type aggregation needs a station type")
        label = f"{scope_tag} {duration}min"
    elif scope_kind == "area":
        label = f"{scope_tag or 'area'} {duration}min"
    else:
        raise ValueError(f"Unknown scope kind: {scope_kind}")

    merged = merge(geometries, label=label)

    if scope_kind == "station-type":
        properties = station_type_style(scope_tag).as_properties()
    else:
        properties = area_style().as_properties()
    properties.update(
        {
            "contour": int(duration),
            "metric": "time",
            "type": "station-type" if scope_kind == "station-type" else "area-wide",
            "geometry-count": len(geometries),
        }
    )
    if scope_kind == "station-type":
        properties["railway-type"] = railway_type_label(scope_tag)

    logger.debug("Aggregated %s geometries for %s", len(geometries), label)
    return geo.feature_collection(merged, properties)
