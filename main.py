from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException

from lms_analytics.core.cache import create_cache_manager
from lms_analytics.core.config import settings
from lms_analytics.core.logging import configure_logging
from lms_analytics.endpoints import analytics
from lms_analytics.middleware.exceptions import (
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from lms_analytics.middleware.logging import RequestLoggingMiddleware
from lms_analytics.services.analytics import AnalyticsService
from lms_analytics.services.data_source import AnalyticsDataSource, SQLDataSource
from lms_analytics.utils.events import EventBus, event_bus


def create_app(data_source: AnalyticsDataSource = None, bus: EventBus = event_bus) -> FastAPI:
    configure_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json"
    )

    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    cache_manager = create_cache_manager()
    cache_manager.register_invalidation_handlers(bus)
    app.state.cache_manager = cache_manager
    app.state.analytics_service = AnalyticsService(data_source or SQLDataSource(), cache_manager)

    app.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
