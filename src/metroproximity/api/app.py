from __future__ import annotations

# FastAPI is the ASGI framework serving the read-only area/station/isochrone endpoints.
from fastapi import FastAPI

# Routes are defined in a separate module so the app factory stays small and testable.
from metroproximity.api.routes import router
# The service owns storage access; routes only translate its results and errors to HTTP.
from metroproximity.api.service import AreaService
# Typed config keeps storage paths and logging settings explicit (no hidden globals).
from metroproximity.config.models import AppConfig
# Logging is configured once per process, from the same config the generator uses.
from metroproximity.utils.logging import configure_logging


# App factory: everything the routes need is built from the typed config (no module-level state).
def create_app(config: AppConfig) -> FastAPI:
    # Configure logging before any request handler can emit logs.
    configure_logging(config.logging)

    # The OpenAPI title follows `app.name` so several deployments are distinguishable in /docs.
    app = FastAPI(title=config.app.name)
    # Routes reach the service through `Depends(get_service)`; tests build a fresh app per config.
    app.state.area_service = AreaService(config)
    app.include_router(router)
    return app
