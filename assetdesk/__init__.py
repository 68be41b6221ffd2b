"""Application factory and top-level wiring for the Asset Desk service.

This module is the glue that brings together configuration, the inventory API
client, the device form session store, routers, and error handling. It gives
a newcomer a bird's-eye view of *what* pieces exist, *when* they are
initialised, and *how* they interact to back the console's device dialogs.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import settings
from .core.errors import (
    AssetFormError,
    asset_form_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .middlewares import RequestIdMiddleware


def create_app(*, inventory_client: Any | None = None, form_store: Any | None = None) -> FastAPI:
    """Build the FastAPI app; tests pass in fakes for the inventory client."""

    from .clients.inventory import InventoryClient
    from .routers import api_device_forms as api_device_forms_router
    from .services.form_sessions import FormSessionStore

    app = FastAPI(title=settings.APP_NAME)

    # ---------- Shared state ----------
    # One HTTP client (connection pool) and one form store per process.
    app.state.inventory_client = inventory_client if inventory_client is not None else InventoryClient()
    app.state.form_store = form_store if form_store is not None else FormSessionStore()

    # ---------- Middleware ----------
    app.add_middleware(RequestIdMiddleware)
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # ---------- Routers ----------
    app.include_router(api_device_forms_router.router)

    # ---------- Exception handling ----------
    # Domain errors become the same ``{"code", "message"}`` envelope as HTTP errors.
    app.add_exception_handler(AssetFormError, asset_form_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @app.on_event("shutdown")
    def _close_inventory_client() -> None:
        close = getattr(app.state.inventory_client, "close", None)
        if callable(close):
            close()

    return app


__all__ = ["create_app"]
