"""
Shared pytest fixtures for the yield forecaster test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the schema
    applied. Created anew for each test that requests it.
  - ``app_config``: Built-in default ``AppConfig`` (no TOML, no env).
  - ``sample_records``: Twelve deterministic training records.
  - Trained ``ModelRecord`` fixtures for the ridge and boosted profiles.
"""

from __future__ import annotations

import sqlite3
from typing import Generator

import pytest

from yield_forecaster.config import AppConfig
from yield_forecaster.db.schema import apply_schema
from yield_forecaster.models.artifact import ModelRecord
from yield_forecaster.models.record import YieldRecord
from yield_forecaster.pipeline.train import fit_profile


def make_records(n: int = 12, offset: int = 0) -> list[YieldRecord]:
    """Synthetic records: yield grows with notes, likes and days, plus small noise."""
    records = []
    for k in range(n):
        i = k + offset
        days = float(3 + i % 5)
        notes = float(20 + 7 * i)
        likes = float(100 + 13 * ((i * 5) % 11))
        favorites = float(10 + 3 * i)
        comments = float(5 + (i * 7) % 9)
        noise = float((i % 3) - 1) * 2.0
        records.append(
            YieldRecord(
                collection_days=days,
                notes=notes,
                likes=likes,
                favorites=favorites,
                comments=comments,
                yield_total=0.8 * notes + 0.05 * likes + 2.0 * days + noise,
            )
        )
    return records


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the schema applied."""
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    apply_schema(conn)
    yield conn
    conn.close()


# ── Config / data fixtures ────────────────────────────────────────────────────

@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def sample_records() -> list[YieldRecord]:
    return make_records()


@pytest.fixture
def ridge_record(sample_records, app_config) -> ModelRecord:
    """Trained 'telecom' (ridge, total) model."""
    return fit_profile(sample_records, "telecom", app_config)


@pytest.fixture
def recall_record(sample_records, app_config) -> ModelRecord:
    """Trained 'recall' (boosted, daily intensity) model."""
    return fit_profile(sample_records, "recall", app_config)


@pytest.fixture
def record_factory():
    """``make_records`` for tests that need more than the default sample."""
    return make_records
