from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from dsefeed import __version__
from dsefeed.api.routes import router
from dsefeed.api.settings import ApiSettings, get_api_settings
from dsefeed.core.context import ServiceContext
from dsefeed.core.errors import DseFeedError
from dsefeed.db.manager import DatabaseManager
from dsefeed.scheduler.scheduler import build_scheduler
from dsefeed.utils.logger import get_logger

log = get_logger(__name__)


def _build_context(settings: ApiSettings) -> ServiceContext:
    database = DatabaseManager(settings.database_url) if settings.database_configured else None
    return ServiceContext.build(database=database)


def create_app(settings: Optional[ApiSettings] = None, context: Optional[ServiceContext] = None) -> FastAPI:
    settings = settings or get_api_settings()
    context = context or _build_context(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if context.database is not None:
            await context.database.create_all()
        if settings.scheduler_enabled:
            if context.database is None:
                log.warning("SCHEDULER_ENABLED is set but no DATABASE_URL; daily price capture disabled")
            else:
                scheduler = build_scheduler(context)
                scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown(wait=False)
            await context.close()

    app = FastAPI(
        title="DSE Market Feed API",
        description="Live quotes, fundamentals and price history scraped from the Dhaka Stock Exchange",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.context = context

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DseFeedError)
    async def feed_error_handler(request: Request, exc: DseFeedError):
        if exc.status_code >= 500:
            log.error(f"{request.method} {request.url.path} failed: {exc.as_dict()}")
        else:
            log.info(f"{request.method} {request.url.path} rejected: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        log.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(router, prefix="/api", tags=["Market"])

    @app.options("/{path:path}", include_in_schema=False)
    async def preflight(path: str):
        return Response(status_code=204)

    @app.get("/health")
    async def health():
        database_ok = await context.database.check_connection() if context.database is not None else False
        return {"status": "ok", "database": database_ok}

    return app


app = create_app()
