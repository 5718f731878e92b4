from __future__ import annotations
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import issues, health
from .core.config import Settings, get_settings
from .core.logging import RequestLoggingMiddleware, configure_logging, get_logger
from .db.database import Database
from .db.store import IssueStore

logger = get_logger(__name__)

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    app = FastAPI(title="Issue Tracker")
    app.state.settings = settings

    app.add_middleware(RequestLoggingMiddleware)
    if settings.frontend_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.frontend_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # API routers
    app.include_router(issues.router, prefix="/api")
    app.include_router(health.router, prefix="/api")

    @app.on_event("startup")
    async def on_startup():
        db = Database(settings.database_url)
        await db.connect()
        app.state.db = db
        app.state.store = IssueStore(db)

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.db.disconnect()

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):
        logger.exception("unhandled_exception", error=str(exc), error_type=type(exc).__name__, path=request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return app

app = create_app()
