"""Dependency injection for FastAPI routes."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request
from fastapi.responses import JSONResponse

from autoprice.core.config import AutopriceConfig
from autoprice.storage import IndexMaintainer, SnapshotStore
from autoprice.trends import TrendEngine


@dataclass
class AppState:
    """Shared application state, attached to app.state during lifespan."""

    config: AutopriceConfig
    snapshots: SnapshotStore
    index: IndexMaintainer
    trends: TrendEngine


def get_app_state(request: Request) -> AppState:
    """Dependency: retrieve AppState from the request."""
    return request.app.state.app_state


def get_config(request: Request) -> AutopriceConfig:
    return request.app.state.app_state.config


def get_snapshots(request: Request) -> SnapshotStore:
    return request.app.state.app_state.snapshots


def get_index(request: Request) -> IndexMaintainer:
    return request.app.state.app_state.index


def get_trends(request: Request) -> TrendEngine:
    return request.app.state.app_state.trends


EXEMPT_PATHS = {"/api/health"}


async def api_key_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware: validate X-API-Key header when authentication is enabled."""
    if request.url.path in EXEMPT_PATHS:
        return await call_next(request)

    config = request.app.state.app_state.config
    if config.api.api_key:
        api_key = request.headers.get("X-API-Key")
        if api_key != config.api.api_key:
            return JSONResponse(
                status_code=401,
                content={"error": "Unauthorized", "detail": "Invalid or missing API key"},
            )
    return await call_next(request)
