# tankwatch/core/seed.py

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

import requests
from sqlalchemy.orm import sessionmaker

from tankwatch.logic.pump import last_open_activation

from .db import SessionLocal, init_db, session_scope
from .firebase import LATEST_PATH, PUMP_PATH, READINGS_PATH, REFILLS_PATH, parse_latest, parse_pump_records, parse_refills
from .models import PumpRecord
from .queries import day_key, get_state, record_readings, save_refill

logger = logging.getLogger(__name__)


class FirebaseImporter:
    """
    Copies a Firebase Realtime Database snapshot into the local SQL store.

    Trees handled:
      - sensor_readings/<date>/<ts>   -> sensor_readings
      - compesa_arrivals/<date>/<ts>  -> refill_records (water_ended kept when present)
      - pump_activations/<date>/<ts>  -> pump_records
      - latest                        -> tank_state
    """

    def __init__(self, *, database_url: Optional[str] = None, auth: Optional[str] = None) -> None:
        self.database_url = (database_url or os.getenv("FIREBASE_DATABASE_URL") or "").rstrip("/")
        if not self.database_url:
            raise ValueError("A Firebase database URL is required")
        self.auth = auth or os.getenv("FIREBASE_AUTH")
        self.http = requests.Session()

    # ----------------------------
    # Public
    # ----------------------------
    def run(self, factory: sessionmaker = SessionLocal) -> Dict[str, int]:
        counts = {"readings": 0, "refills": 0, "pump_records": 0}

        with session_scope(factory) as session:
            readings_tree = self._fetch_json(READINGS_PATH) or {}
            rows = []
            if isinstance(readings_tree, dict):
                for bucket in readings_tree.values():
                    if not isinstance(bucket, dict):
                        continue
                    rows.extend(
                        {**payload, "timestamp": ts} for ts, payload in bucket.items() if isinstance(payload, dict)
                    )
            counts["readings"] = record_readings(session, rows)

            for event in parse_refills(self._fetch_json(REFILLS_PATH)):
                save_refill(session, event)
                counts["refills"] += 1

            pump_records = parse_pump_records(self._fetch_json(PUMP_PATH))
            # only the newest unanswered activation is still running
            still_open = last_open_activation(pump_records)
            for record in pump_records:
                if session.query(PumpRecord.id).filter(PumpRecord.timestamp_ms == record.timestamp_ms).first():
                    continue
                session.add(
                    PumpRecord(
                        timestamp_ms=record.timestamp_ms,
                        day=day_key(record.timestamp_ms),
                        action=record.action,
                        status="on" if record == still_open else "off",
                        duration_ms=record.duration_ms,
                    )
                )
                counts["pump_records"] += 1

            latest = parse_latest(self._fetch_json(LATEST_PATH))
            state = get_state(session)
            if latest.level_percent is not None:
                state.level_percent = latest.level_percent
                state.reading_ms = latest.reading_ms or state.reading_ms
            state.pump_is_on = latest.pump_is_on
            state.pump_changed_ms = latest.pump_changed_ms

        logger.info("Imported %s", counts)
        return counts

    # ----------------------------
    # Helpers
    # ----------------------------
    def _fetch_json(self, path: str) -> Any:
        url = f"{self.database_url}/{path}.json"
        params = {"auth": self.auth} if self.auth else None
        try:
            resp = self.http.get(url, params=params, timeout=30)
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as exc:
            logger.error("Failed to fetch %s: %s", url, exc)
            return None
        except json.JSONDecodeError as exc:
            logger.error("Invalid JSON from %s: %s", url, exc)
            return None


def run_seed() -> Dict[str, int]:
    """
    Entry point used by `python -m tankwatch.core.seed`.
    Creates tables (SQLite by default) and then imports the Firebase snapshot.
    """
    init_db()
    return FirebaseImporter().run()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    stats = run_seed()
    print(json.dumps(stats, indent=2, default=str))
