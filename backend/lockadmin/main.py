"""
RFID Lock Admin - FastAPI Application Entry Point.

Feature-based modular architecture:
  Each feature in lockadmin/features/ has its own router, service and schemas.
  All state lives in Supabase; commands are picked up by the door firmware,
  which polls device_commands and acknowledges them.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lockadmin.config import get_settings

# ── Feature Routers ──────────────────────────────────────
from lockadmin.features.commands.router import router as commands_router
from lockadmin.features.devices.router import router as devices_router
from lockadmin.features.unlock.router import router as unlock_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup & shutdown."""
    settings = get_settings()
    logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)
    logger.info(f"🚀 {settings.APP_NAME} v{settings.APP_VERSION} starting...")
    logger.info(f"🔗 Supabase: {settings.SUPABASE_URL[:40]}...")
    logger.info(
        f"🔑 Quick unlock token: {'configured' if settings.QUICK_UNLOCK_TOKEN else 'disabled'}"
    )
    yield
    logger.info("👋 Shutting down...")


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Admin API and command relay for ESP32 RFID door locks",
        lifespan=lifespan,
    )

    # ── CORS ─────────────────────────────────────────────
    origins = settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Register Feature Routers ─────────────────────────
    app.include_router(commands_router, prefix="/api", tags=["Commands"])
    app.include_router(devices_router, prefix="/api", tags=["Devices"])
    app.include_router(unlock_router, prefix="/api", tags=["Quick Unlock"])

    # ── Health Check ─────────────────────────────────────
    @app.get("/health", tags=["System"])
    async def health_check():
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
        }

    return app


app = create_app()
