"""
SQLite schema DDL.

All statements use ``IF NOT EXISTS`` so ``apply_schema()`` is idempotent.

Tables:
  model_artifacts    One row per model type: the serialized ``ModelRecord``
                     plus its metrics denormalized for quick listing.
  training_records   Accumulated training data per model type, in the order
                     it was supplied (``position``).
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_MODEL_ARTIFACTS = """
CREATE TABLE IF NOT EXISTS model_artifacts (
    model_type      TEXT    PRIMARY KEY,
    family          TEXT    NOT NULL CHECK (family IN ('ridge', 'boosted')),
    mode            TEXT    NOT NULL CHECK (mode IN ('daily_intensity', 'total')),
    record_json     TEXT    NOT NULL,
    r2              REAL    NOT NULL,
    mae             REAL    NOT NULL,
    sample_size     INTEGER NOT NULL,
    trained_at      TEXT    NOT NULL
);
"""

_DDL_TRAINING_RECORDS = """
CREATE TABLE IF NOT EXISTS training_records (
    record_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    model_type      TEXT    NOT NULL,
    position        INTEGER NOT NULL,
    collection_days REAL    NOT NULL DEFAULT 0,
    notes           REAL    NOT NULL DEFAULT 0,
    likes           REAL    NOT NULL DEFAULT 0,
    favorites       REAL    NOT NULL DEFAULT 0,
    comments        REAL    NOT NULL DEFAULT 0,
    yield_total     REAL,
    UNIQUE (model_type, position)
);
CREATE INDEX IF NOT EXISTS idx_training_records_type
    ON training_records (model_type);
"""

_ALL_DDL = [
    _DDL_MODEL_ARTIFACTS,
    _DDL_TRAINING_RECORDS,
]

ALL_TABLE_NAMES = [
    "model_artifacts",
    "training_records",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn`` (idempotent)."""
    logger.debug("Applying schema to database...")

    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.info("Schema applied: %d tables, indexes created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return the table names present in the database, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
