"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from autoprice.api.deps import AppState, api_key_middleware
from autoprice.api.routes import router
from autoprice.core.config import AutopriceConfig, load_config
from autoprice.core.exceptions import AutopriceError, ConfigError, StorageError
from autoprice.storage import IndexMaintainer, SnapshotStore
from autoprice.trends import TrendCache, TrendEngine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    config = app.state._pending_config or load_config()
    snapshots = SnapshotStore(config.storage.data_dir)
    index = IndexMaintainer(snapshots)
    cache = TrendCache(
        ttl_seconds=config.trends.cache_ttl_seconds,
        max_entries=config.trends.cache_max_entries,
    )
    trends = TrendEngine(snapshots, index, cache=cache, max_points=config.trends.max_points)

    app.state.app_state = AppState(
        config=config, snapshots=snapshots, index=index, trends=trends
    )

    yield

    cache.clear()


def create_app(config: AutopriceConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    import autoprice

    app = FastAPI(
        title="autoprice API",
        description="Daily vehicle price lists and price trends",
        version=autoprice.__version__,
        lifespan=lifespan,
    )

    # Stash config so lifespan can retrieve it
    app.state._pending_config = config

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # API key check; a no-op unless the resolved config sets a key
    app.middleware("http")(api_key_middleware)

    app.include_router(router, prefix="/api")

    # Exception handlers
    @app.exception_handler(AutopriceError)
    async def autoprice_exception_handler(request: Request, exc: AutopriceError):
        status_map = {
            ConfigError: 400,
            StorageError: 500,
        }
        status = status_map.get(type(exc), 500)
        return JSONResponse(
            status_code=status,
            content={"error": type(exc).__name__, "detail": str(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "NotFound" if exc.status_code == 404 else "HTTPError", "detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    return app
