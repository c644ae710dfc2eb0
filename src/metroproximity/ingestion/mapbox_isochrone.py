from __future__ import annotations

# `logging` reports skipped extra features and token check results (never the token itself).
import logging
from typing import Any, Literal, Optional

# Pydantic validates the provider payload at the boundary so later stages can trust its shape.
from pydantic import BaseModel, Field, ValidationError

from metroproximity.config.models import MapboxSettings
from metroproximity.errors import InvalidResponse, ProviderError, ProviderUnavailable, Unauthorized
# Mapbox takes `{lon},{lat}` in the path; the helper fixes the axis order in one place.
from metroproximity.gis.geometry import lonlat_path
# Shared session: zero retries, error mapping, pacing between consecutive calls.
from metroproximity.ingestion.http_base import ProviderSession, _RateLimiter
from metroproximity.schemas.core import DURATIONS


logger = logging.getLogger(__name__)

PROVIDER = "mapbox"


# Only the fields we rely on are modelled; unknown provider fields are ignored.
class IsochroneGeometryIn(BaseModel):
    type: Literal["Polygon", "MultiPolygon"]
    coordinates: list[Any] = Field(min_length=1)


class IsochroneFeatureIn(BaseModel):
    type: Literal["Feature"] = "Feature"
    properties: dict[str, Any] = Field(default_factory=dict)
    geometry: IsochroneGeometryIn


class IsochroneResponseIn(BaseModel):
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: list[IsochroneFeatureIn] = Field(min_length=1)


class MapboxIsochroneClient:
    """
    Walking isochrones from the Mapbox Isochrone API.

    One contour per call (`contours_minutes={duration}`), polygons only. The client does not retry;
    a failed call surfaces as one of the provider errors and the caller decides what to skip.
    """

    def __init__(
        self,
        settings: MapboxSettings,
        *,
        rate_limiter: Optional[_RateLimiter] = None,
    ) -> None:
        self._settings = settings
        self._http = ProviderSession(
            provider=PROVIDER,
            timeout_s=settings.timeout_s,
            user_agent=settings.user_agent,
            min_request_interval_s=settings.min_request_interval_s,
            rate_limiter=rate_limiter,
        )

    def _token(self) -> str:
        token = self._settings.access_token
        if not token:
            raise Unauthorized("Mapbox access token is not configured (set MAPBOX_ACCESS_TOKEN)", provider=PROVIDER)
        return token

    def isochrone_url(self, lat: float, lon: float, duration_min: int) -> str:
        return (
            f"{self._settings.base_url}/isochrone/v1/mapbox/{self._settings.profile}/{lonlat_path(lat, lon)}"
            f"?contours_minutes={int(duration_min)}&polygons=true&access_token={self._token()}"
        )

    def fetch(self, lat: float, lon: float, duration_min: int) -> dict[str, Any]:
        """
        Fetch one walking isochrone around (lat, lon).

        Returns a GeoJSON FeatureCollection with exactly one Feature in (lon, lat) order.
        The provider's own feature properties are preserved; styling is applied by the caller.
        """

        if duration_min not in DURATIONS:
            raise ValueError(f"Unsupported duration: {duration_min} (allowed: {list(DURATIONS)})")

        resp = self._http.request("GET", self.isochrone_url(lat, lon, duration_min))

        try:
            data = resp.json()
        except ValueError as exc:
            if not resp.ok:
                raise ProviderUnavailable(
                    f"Mapbox isochrone request failed ({resp.status_code})",
                    provider=PROVIDER,
                    status_code=resp.status_code,
                ) from exc
            raise InvalidResponse("Mapbox returned a non-JSON body", provider=PROVIDER) from exc

        if not isinstance(data, dict) or "features" not in data:
            message = data.get("message") if isinstance(data, dict) else None
            raise InvalidResponse(
                f"Mapbox response has no 'features' ({resp.status_code}): {message or 'unexpected payload'}",
                provider=PROVIDER,
                status_code=resp.status_code,
            )
        if not resp.ok:
            raise ProviderUnavailable(
                f"Mapbox isochrone request failed ({resp.status_code})",
                provider=PROVIDER,
                status_code=resp.status_code,
            )

        try:
            parsed = IsochroneResponseIn.model_validate(data)
        except ValidationError as exc:
            raise InvalidResponse(f"Mapbox isochrone payload does not match schema: {exc}", provider=PROVIDER) from exc

        if len(parsed.features) > 1:
            logger.warning(
                "Mapbox returned %s features for %smin at (%s, %s); keeping the first",
                len(parsed.features),
                duration_min,
                lat,
                lon,
            )
        feature = parsed.features[0]
        return {
            "type": "FeatureCollection",
            "features": [feature.model_dump()],
        }

    def check_token(self) -> bool:
        """
        Validate the configured access token against `/tokens/v2`.
        """

        if not self._settings.access_token:
            logger.error("Mapbox access token is not configured")
            return False

        url = f"{self._settings.base_url}/tokens/v2?access_token={self._settings.access_token}"
        try:
            resp = self._http.request("GET", url, timeout_s=self._settings.token_check_timeout_s)
        except Unauthorized:
            logger.error("Mapbox access token was rejected")
            return False
        except ProviderError as exc:
            logger.error("Mapbox token check failed: %s", exc)
            return False

        try:
            body = resp.json()
        except ValueError:
            body = None
        # Anything but a JSON object (array, string, null) carries no token code.
        code = body.get("code") if isinstance(body, dict) else None
        if resp.ok and code == "TokenValid":
            return True
        logger.error("Mapbox access token is not valid (status=%s, code=%s)", resp.status_code, code)
        return False

    def close(self) -> None:
        self._http.close()
