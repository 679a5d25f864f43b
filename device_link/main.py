from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .platform.config import get_settings
from .platform.security import get_current_user_id
from .routes.withings import router as withings_router
from .withings.application.errors import WithingsError
from .withings_webhook import webhook_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    yield


app: FastAPI = FastAPI(
    title="Device Link",
    version="1.0.0",
    description="Links Withings devices to platform users and serves their vitals",
    lifespan=lifespan,
)


@app.exception_handler(WithingsError)
async def withings_error_handler(request: Request, exc: WithingsError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    content: Dict[str, Any] = {
        "success": False,
        "error": exc.message,
        "code": exc.code,
        **exc.hints(),
    }
    return JSONResponse(status_code=exc.http_status, content=content)


@app.api_route("/", methods=["GET", "HEAD"], include_in_schema=False)
@app.api_route("/healthz", methods=["GET", "HEAD"], include_in_schema=False)
async def healthz() -> dict[str, str]:
    """Lightweight endpoint used for health checks."""
    return {"status": "ok"}


@app.get("/v2/api-schema")
async def get_api_schema(request: Request, _: str = Depends(get_current_user_id)) -> JSONResponse:
    """Return the OpenAPI schema for this API version."""
    openapi_schema: Dict[str, Any] = request.app.openapi()
    return JSONResponse(openapi_schema)


app.include_router(withings_router, prefix="/v2", dependencies=[Depends(get_current_user_id)])

# Withings pushes notifications without a session token
app.include_router(webhook_router)
