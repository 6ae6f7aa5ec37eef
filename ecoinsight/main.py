import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ecoinsight import __version__
from ecoinsight.auth import router as auth_router
from ecoinsight.climate import router as climate_router
from ecoinsight.core.config import load_settings
from ecoinsight.core.context import AppContext
from ecoinsight.core.errors import register_exception_handlers
from ecoinsight.core.logging import configure_logging
from ecoinsight.core.ratelimit import RateLimiter, enforce_global_limit
from ecoinsight.external import router as external_router
from ecoinsight.health import router as health_router
from ecoinsight.health.service import SERVICE_NAME
from ecoinsight.sustainability import router as sustainability_router
from ecoinsight.timeseries import router as timeseries_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _index() -> dict:
    return {
        "success": True,
        "service": SERVICE_NAME,
        "version": __version__,
        "status": "running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "endpoints": {
            "health": f"{API_PREFIX}/health",
            "auth": f"{API_PREFIX}/auth",
            "climate": f"{API_PREFIX}/climate",
            "sustainability": f"{API_PREFIX}/sustainability",
            "timeseries": f"{API_PREFIX}/timeseries",
        },
    }


index_router = APIRouter()


@index_router.get("/")
async def index() -> dict:
    return _index()


def create_app(context: AppContext | None = None) -> FastAPI:
    """
    Build the API. Tests pass a prebuilt `context`; otherwise stores are
    connected in the lifespan and startup fails if any of them is unreachable.
    """
    settings = context.settings if context is not None else load_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if context is not None:
            app.state.context = context
            yield
            return

        ctx = await AppContext.open(settings)
        app.state.context = ctx
        logger.info("app_started version=%s", __version__)
        try:
            yield
        finally:
            await ctx.close()

    app = FastAPI(title="EcoInsight API", version=__version__, lifespan=lifespan)
    app.state.rate_limiter = RateLimiter.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "request method=%s path=%s status=%s duration_ms=%.1f client=%s user_agent=%s",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
            request.client.host if request.client else "-",
            request.headers.get("user-agent", "-"),
        )
        return response

    register_exception_handlers(app)

    # Index and health stay outside the rate limit.
    app.include_router(index_router, tags=["index"])
    app.include_router(index_router, prefix=API_PREFIX, tags=["index"])
    app.include_router(health_router.router, tags=["health"])
    app.include_router(health_router.router, prefix=API_PREFIX, tags=["health"])

    limited = [Depends(enforce_global_limit)]
    app.include_router(auth_router.router, prefix=API_PREFIX, tags=["auth"], dependencies=limited)
    # Live proxies first so their static paths win over /climate/{id}.
    app.include_router(external_router.router, prefix=API_PREFIX, tags=["external"], dependencies=limited)
    app.include_router(climate_router.router, prefix=API_PREFIX, tags=["climate"], dependencies=limited)
    app.include_router(sustainability_router.router, prefix=API_PREFIX, tags=["sustainability"], dependencies=limited)
    app.include_router(timeseries_router.router, prefix=API_PREFIX, tags=["timeseries"], dependencies=limited)

    return app


app = create_app()
