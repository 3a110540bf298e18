"""SQLite-backed local activity table keyed by Strava activity id."""

import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Iterable, List

from activity_trend.models.strava import Activity

logger = logging.getLogger(__name__)

SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS activities (
    id          INTEGER PRIMARY KEY,
    type        TEXT NOT NULL,
    start_ts    REAL NOT NULL,
    data        TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_activities_start ON activities(start_ts);
"""

_UPSERT_SQL = "INSERT OR REPLACE INTO activities (id, type, start_ts, data) VALUES (?, ?, ?, ?)"


def _row(activity: Activity) -> tuple:
    return (
        activity.id,
        activity.type,
        activity.start_date.timestamp(),
        activity.model_dump_json(),
    )


class ActivityStore:
    """Bulk key-value storage for activities.

    Writes replace whole records by id; there is no field-level merge.
    """

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)
        with closing(self._connect()) as conn:
            conn.executescript(SCHEMA_SQL)

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def bulk_upsert(self, activities: Iterable[Activity]) -> int:
        rows = [_row(a) for a in activities]
        with closing(self._connect()) as conn, conn:
            conn.executemany(_UPSERT_SQL, rows)
        return len(rows)

    def replace_all(self, activities: Iterable[Activity]) -> int:
        """Wipe the table and write ``activities`` in a single transaction."""
        rows = [_row(a) for a in activities]
        with closing(self._connect()) as conn, conn:
            conn.execute("DELETE FROM activities")
            conn.executemany(_UPSERT_SQL, rows)
        logger.info(f"Stored {len(rows)} activities (full replace)")
        return len(rows)

    def get_all(self) -> List[Activity]:
        """All stored activities, newest first."""
        with closing(self._connect()) as conn:
            rows = conn.execute("SELECT data FROM activities ORDER BY start_ts DESC").fetchall()
        return [Activity.model_validate_json(data) for (data,) in rows]

    def clear_all(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute("DELETE FROM activities")
