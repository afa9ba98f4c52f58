from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .endpoints import alerts_router, analytics_router, health_router, readings_router
from .errors import TelemetryError, Unavailable

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="IoT Telemetry Service", version="0.1.0")


@app.exception_handler(TelemetryError)
async def telemetry_error_handler(request: Request, exc: TelemetryError) -> JSONResponse:
    if isinstance(exc, Unavailable):
        logger.warning("UNAVAILABLE path=%s service=%s detail=%s", request.url.path, exc.service, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(health_router)
app.include_router(readings_router)
app.include_router(analytics_router)
app.include_router(alerts_router)
