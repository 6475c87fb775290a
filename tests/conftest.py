from __future__ import annotations

import os
import pathlib
import tempfile

import pytest

# The module-level app and engine are built on import; keep them off the repo tree.
_SCRATCH = pathlib.Path(tempfile.mkdtemp(prefix="tankwatch-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_SCRATCH / 'app.db'}")
os.environ["TANKWATCH_STORE"] = "sql"

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from tankwatch.app import create_app  # noqa: E402
from tankwatch.core.db import init_db, make_engine, make_session_factory  # noqa: E402
from tankwatch.core.store import ReadingCache, SqlReadingStore  # noqa: E402
from tankwatch.dependencies import get_now_ms  # noqa: E402
from tankwatch.logic.records import MS_PER_HOUR, DisplayPoint, Reading  # noqa: E402
from tankwatch.settings import Settings  # noqa: E402

# 2024-03-01T12:00:00Z
NOW_MS = 1_709_294_400_000


def make_points(levels, *, start_ms: int = NOW_MS - 24 * MS_PER_HOUR, step_ms: int = MS_PER_HOUR):
    return [
        DisplayPoint(timestamp_ms=start_ms + i * step_ms, level_percent=float(level), display_label="")
        for i, level in enumerate(levels)
    ]


def make_readings(levels, *, start_ms: int = NOW_MS - 24 * MS_PER_HOUR, step_ms: int = MS_PER_HOUR):
    return [Reading(timestamp_ms=start_ms + i * step_ms, level_percent=float(level)) for i, level in enumerate(levels)]


@pytest.fixture()
def settings() -> Settings:
    return Settings(timezone="UTC")


@pytest.fixture()
def session_factory(tmp_path: pathlib.Path) -> sessionmaker:
    engine = make_engine(f"sqlite:///{tmp_path / 'test.sqlite'}")
    init_db(engine)
    return make_session_factory(engine)


@pytest.fixture()
def sql_store(session_factory: sessionmaker) -> SqlReadingStore:
    return SqlReadingStore(session_factory)


@pytest.fixture()
def cache() -> ReadingCache:
    return ReadingCache(default_ttl_seconds=60)


@pytest.fixture()
def client(settings: Settings, sql_store: SqlReadingStore, cache: ReadingCache) -> TestClient:
    app = create_app(settings=settings, store=sql_store, cache=cache)
    app.dependency_overrides[get_now_ms] = lambda: NOW_MS
    return TestClient(app)
