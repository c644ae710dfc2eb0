from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class AreaOut(BaseModel):
    # `id` is the area scope (`country-area`), the value every other route takes as `{area_id}`.
    id: str = Field(..., examples=["it-roma"])
    country: str
    area_id: str
    name: str
    latitude: float
    longitude: float
    diameter: int


class AreasResponseOut(BaseModel):
    items: list[AreaOut] = Field(default_factory=list)


class StationOut(BaseModel):
    id: str
    name: str
    latitude: float
    longitude: float
    type: str = Field(..., examples=["station", "tram_stop", "trolleybus", "undefined"])
    wikipedia_link: Optional[str] = None


class StationsResponseOut(BaseModel):
    area: str
    items: list[StationOut] = Field(default_factory=list)


class IsochroneOut(BaseModel):
    type: str = "FeatureCollection"
    features: list[dict[str, Any]] = Field(default_factory=list)
