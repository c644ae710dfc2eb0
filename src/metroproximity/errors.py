from __future__ import annotations

from typing import Optional


class MetroProximityError(RuntimeError):
    pass


class ProviderError(MetroProximityError):
    """
    Base class for failures talking to an external provider (Mapbox, Overpass).

    `provider` names the upstream service so fan-out loops can log a useful line
    without inspecting the concrete subclass.
    """

    def __init__(self, message: str, *, provider: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ProviderUnavailable(ProviderError):
    # Connection failures and non-2xx responses other than auth errors.
    pass


class ProviderTimeout(ProviderError):
    pass


class Unauthorized(ProviderError):
    # 401/403: the API key is missing, revoked or lacks the required scope.
    pass


class InvalidResponse(ProviderError):
    # Body is not JSON or does not match the expected schema.
    pass


class NotFound(MetroProximityError):
    pass


class AreaNotFound(NotFound):
    def __init__(self, area: str) -> None:
        super().__init__(f"Area '{area}' not found")
        self.area = area


class StationNotFound(NotFound):
    def __init__(self, area: str, station_id: str) -> None:
        super().__init__(f"Station '{station_id}' not found in area '{area}'")
        self.area = area
        self.station_id = station_id


class NoInputData(MetroProximityError):
    """Raised when an aggregation target has zero usable geometries."""


NoGeometries = NoInputData


class GeometryInvalid(UserWarning):
    """
    Warning category for union results that stay invalid after repair.

    The union engine emits it with `warnings.warn` and tags the matching log record with it;
    the merged geometry is still returned.
    """
