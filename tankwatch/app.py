"""FastAPI application wiring."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tankwatch.control import pump_router, refill_router
from tankwatch.core.db import init_db
from tankwatch.core.firebase import FirebaseReadingStore
from tankwatch.core.store import ReadingCache, ReadingStore, SqlReadingStore
from tankwatch.settings import Settings, load_settings
from tankwatch.state import state_router
from tankwatch.tools import tool_router

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> ReadingStore:
    if settings.store == "firebase":
        if not settings.firebase_url:
            raise RuntimeError("FIREBASE_DATABASE_URL is required when TANKWATCH_STORE=firebase")
        logger.info("Using Firebase store at %s", settings.firebase_url)
        return FirebaseReadingStore(settings.firebase_url, auth=settings.firebase_auth, tz=settings.tz)

    init_db()
    return SqlReadingStore(tz=settings.tz)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ReadingStore] = None,
    cache: Optional[ReadingCache] = None,
) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(title="Tankwatch Backend", version="0.3.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )
    app.state.settings = settings
    app.state.store = store if store is not None else build_store(settings)
    app.state.cache = cache if cache is not None else ReadingCache(settings.default_cache_ttl_seconds)

    @app.get("/healthz")
    def healthcheck() -> dict:
        return {"ok": True}

    app.include_router(tool_router)
    app.include_router(state_router)
    app.include_router(pump_router)
    app.include_router(refill_router)
    return app


app = create_app()
