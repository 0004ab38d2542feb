from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI
from starlette.requests import Request

from blogfeed.api.router import api_router
from blogfeed.core.config import get_settings
from blogfeed.core.telemetry import (
    configure_api_logging,
    record_response,
    request_span,
    setup_api_telemetry,
    shutdown_api_telemetry,
)
from blogfeed.services.content import get_content_service
from blogfeed.services.engagement import get_engagement_service
from blogfeed.services.notifications import get_notification_service
from blogfeed.services.store import get_store

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_api_logging(settings)
    telemetry_runtime = setup_api_telemetry(settings)
    categories = await get_content_service().refresh_category_map()
    logger.info("category map loaded with %s entries", len(categories))
    try:
        yield
    finally:
        shutdown_api_telemetry(telemetry_runtime)
        # Ensure asyncpg pool shuts down on app teardown.
        await get_store().close()
        get_store.cache_clear()
        get_content_service.cache_clear()
        get_engagement_service.cache_clear()
        get_notification_service.cache_clear()


app = FastAPI(title=settings.app_name, lifespan=lifespan)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    started_at = time.perf_counter()
    with request_span(request.method, request.url.path) as span:
        response = await call_next(request)
        record_response(span, response.status_code)
    elapsed_ms = (time.perf_counter() - started_at) * 1000.0
    logger.info(
        "http request method=%s path=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


app.include_router(api_router)
