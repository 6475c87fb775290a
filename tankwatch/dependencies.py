"""FastAPI dependencies resolving the per-app store, cache and settings."""

from __future__ import annotations

import time

from fastapi import Request

from tankwatch.core.store import ReadingCache, ReadingStore
from tankwatch.settings import Settings


def get_store(request: Request) -> ReadingStore:
    return request.app.state.store


def get_cache(request: Request) -> ReadingCache:
    return request.app.state.cache


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_now_ms() -> int:
    return int(time.time() * 1000)
