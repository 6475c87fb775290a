"""Storage layer: database helpers and the reading store adapters."""

from . import models, queries
from .db import Base, DATABASE_URL, SessionLocal, init_db, session_scope
from .store import DataUnavailableError, LatestState, ReadingCache, ReadingStore, SqlReadingStore, WriteResult

__all__ = [
    "Base",
    "DATABASE_URL",
    "DataUnavailableError",
    "LatestState",
    "ReadingCache",
    "ReadingStore",
    "SessionLocal",
    "SqlReadingStore",
    "WriteResult",
    "init_db",
    "models",
    "queries",
    "session_scope",
]
