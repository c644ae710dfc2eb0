from __future__ import annotations

import logging
from typing import Any

# FastAPI primitives:
# - `APIRouter` groups endpoints so the app factory can include them cleanly.
# - `Depends` injects the service per request (no module globals).
# - `HTTPException` maps lookup failures to status codes + JSON error payloads.
from fastapi import APIRouter, Depends, HTTPException, Request

from metroproximity.api.schemas import AreaOut, AreasResponseOut, IsochroneOut, StationOut, StationsResponseOut
from metroproximity.api.service import AreaService
from metroproximity.errors import NotFound
from metroproximity.schemas.core import Area


logger = logging.getLogger(__name__)

router = APIRouter()


def get_service(request: Request) -> AreaService:
    return request.app.state.area_service  # type: ignore[attr-defined]


def _area_out(area: Area) -> AreaOut:
    return AreaOut(
        id=area.scope,
        country=area.key.country,
        area_id=area.key.area_id,
        name=area.display_name,
        latitude=area.lat,
        longitude=area.lon,
        diameter=area.diameter_m,
    )


def _not_found(exc: NotFound) -> HTTPException:
    logger.info("Not found: %s", exc)
    return HTTPException(status_code=404, detail={"code": "not_found", "message": str(exc)})


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": "bad_request", "message": str(exc)})


@router.get("/area", response_model=AreasResponseOut)
def list_areas(service: AreaService = Depends(get_service)) -> AreasResponseOut:
    return AreasResponseOut(items=[_area_out(a) for a in service.list_areas()])


@router.get("/area/{area_id}", response_model=AreaOut)
def get_area(area_id: str, service: AreaService = Depends(get_service)) -> AreaOut:
    try:
        return _area_out(service.get_area(area_id))
    except NotFound as exc:
        raise _not_found(exc) from exc


@router.get("/area/{area_id}/station", response_model=StationsResponseOut)
def list_stations(area_id: str, service: AreaService = Depends(get_service)) -> StationsResponseOut:
    try:
        stations = service.list_stations(area_id)
    except NotFound as exc:
        raise _not_found(exc) from exc
    return StationsResponseOut(
        area=area_id,
        items=[
            StationOut(
                id=s.station_id,
                name=s.name,
                latitude=s.lat,
                longitude=s.lon,
                type=s.station_type,
                wikipedia_link=s.wikipedia_link,
            )
            for s in stations
        ],
    )


# Isochrone routes return the stored GeoJSON FeatureCollection unchanged.
@router.get("/area/{area_id}/isochrone/{duration}", response_model=IsochroneOut)
def get_area_isochrone(area_id: str, duration: int, service: AreaService = Depends(get_service)) -> Any:
    try:
        return service.area_isochrone(area_id, duration)
    except NotFound as exc:
        raise _not_found(exc) from exc
    except ValueError as exc:
        raise _bad_request(exc) from exc


@router.get("/area/{area_id}/isochrone/{station_type}/{duration}", response_model=IsochroneOut)
def get_station_type_isochrone(
    area_id: str,
    station_type: str,
    duration: int,
    service: AreaService = Depends(get_service),
) -> Any:
    try:
        return service.area_isochrone(area_id, duration, station_type=station_type)
    except NotFound as exc:
        raise _not_found(exc) from exc
    except ValueError as exc:
        raise _bad_request(exc) from exc


@router.get("/area/{area_id}/station/{station_id}/isochrone/{duration}", response_model=IsochroneOut)
def get_station_isochrone(
    area_id: str,
    station_id: str,
    duration: int,
    service: AreaService = Depends(get_service),
) -> Any:
    try:
        return service.station_isochrone(area_id, station_id, duration)
    except NotFound as exc:
        raise _not_found(exc) from exc
    except ValueError as exc:
        raise _bad_request(exc) from exc
