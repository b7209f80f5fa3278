"""
Feature definitions and dense-vector construction.

Every model input is a named feature with a getter over ``YieldRecord``.
Feature vectors are built through this precomputed name → getter table, so
train and inference see the same column order without any per-row dict
lookups.

Daily averages
--------------
``daily_<counter> = <counter> / collection_days`` when days > 0, else 0.

Default feature sets
--------------------
- Ridge:   collection days plus the four daily averages (scale-free inputs
           keep the linear fit well conditioned).
- Boosted: the five raw counters (trees are invariant to monotone scaling).
"""

from __future__ import annotations

from typing import Callable

from yield_forecaster.models.record import (
    COMMENTS_COL,
    DAYS_COL,
    FAVORITES_COL,
    LIKES_COL,
    NOTES_COL,
    YieldRecord,
)


def _daily(counter: float, days: float) -> float:
    return counter / days if days > 0 else 0.0


FEATURE_GETTERS: dict[str, Callable[[YieldRecord], float]] = {
    DAYS_COL:        lambda r: r.collection_days,
    NOTES_COL:       lambda r: r.notes,
    LIKES_COL:       lambda r: r.likes,
    FAVORITES_COL:   lambda r: r.favorites,
    COMMENTS_COL:    lambda r: r.comments,
    "daily_notes":     lambda r: _daily(r.notes, r.collection_days),
    "daily_likes":     lambda r: _daily(r.likes, r.collection_days),
    "daily_favorites": lambda r: _daily(r.favorites, r.collection_days),
    "daily_comments":  lambda r: _daily(r.comments, r.collection_days),
}

DAILY_FEATURES: list[str] = ["daily_notes", "daily_likes", "daily_favorites", "daily_comments"]

RIDGE_FEATURES: list[str] = [DAYS_COL, *DAILY_FEATURES]

BOOSTED_FEATURES: list[str] = [DAYS_COL, NOTES_COL, LIKES_COL, FAVORITES_COL, COMMENTS_COL]

DEFAULT_FEATURES: dict[str, list[str]] = {
    "ridge": RIDGE_FEATURES,
    "boosted": BOOSTED_FEATURES,
}


def derive_daily_features(record: YieldRecord) -> dict[str, float]:
    """The four daily-average features for one record."""
    return {name: FEATURE_GETTERS[name](record) for name in DAILY_FEATURES}


def feature_vector(record: YieldRecord, feature_names: list[str]) -> list[float]:
    """Dense vector for ``record`` in ``feature_names`` order.

    Raises:
        KeyError: If a name is not a known feature.
    """
    return [FEATURE_GETTERS[name](record) for name in feature_names]


def build_feature_matrix(records: list[YieldRecord], feature_names: list[str]) -> list[list[float]]:
    """One ``feature_vector`` per record (outer = rows)."""
    getters = [FEATURE_GETTERS[name] for name in feature_names]
    return [[get(r) for get in getters] for r in records]


# ── Target normalization ──────────────────────────────────────────────────────
#
# daily_intensity: fit on yield / max(1, days); outputs are scaled back up by
#                  the record's days (0 when days <= 0).
# total:           fit on the raw yield; outputs are used as-is.

def training_target(record: YieldRecord, mode: str) -> float:
    """Target value a model of ``mode`` is fitted on."""
    if mode == "daily_intensity":
        return record.target / max(1.0, record.collection_days)
    return record.target


def output_scale(record: YieldRecord, mode: str) -> float:
    """Factor converting a model output back to total-yield units."""
    if mode == "daily_intensity":
        return max(0.0, record.collection_days)
    return 1.0
