"""
Fixed-schema training/inference record.

Spreadsheet rows arrive as loosely-typed dicts whose headers may be the
canonical English names or the original Chinese column titles. They are
resolved once, here, into a frozen ``YieldRecord`` of floats; everything
downstream works on these records or on dense vectors built from them.

Coercion rule: a missing, empty, non-numeric or non-finite value becomes
``0.0``. The target is the exception: it stays ``None`` when the column is
absent, so prediction inputs are distinguishable from training rows.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

# ── Column names ──────────────────────────────────────────────────────────────

DAYS_COL = "collection_days"
NOTES_COL = "notes"
LIKES_COL = "likes"
FAVORITES_COL = "favorites"
COMMENTS_COL = "comments"
TARGET_COL = "yield_total"

# Raw counters every input file must carry, in template order.
INPUT_COLUMNS: list[str] = [DAYS_COL, NOTES_COL, LIKES_COL, FAVORITES_COL, COMMENTS_COL]

# Header aliases accepted at ingestion → canonical name.
COLUMN_ALIASES: dict[str, str] = {
    "采集天数": DAYS_COL,
    "笔记数": NOTES_COL,
    "点赞数": LIKES_COL,
    "收藏数": FAVORITES_COL,
    "评论数": COMMENTS_COL,
    "采集量": TARGET_COL,
    "days": DAYS_COL,
    "yield": TARGET_COL,
}


def canonical_column(name: str) -> str:
    """Map a header to its canonical column name (unknown headers pass through)."""
    stripped = str(name).strip()
    return COLUMN_ALIASES.get(stripped, stripped)


def to_number(v: Any) -> float:
    """Convert a cell to float; missing, non-numeric or non-finite → 0.0."""
    if v is None:
        return 0.0
    if isinstance(v, str):
        v = v.strip()
        if not v:
            return 0.0
    try:
        num = float(v)
    except (TypeError, ValueError):
        return 0.0
    return num if math.isfinite(num) else 0.0


class YieldRecord(BaseModel):
    """One row of raw business counters plus the optional yield target.

    Attributes:
        collection_days: Number of days the counters were collected over.
        notes:           Total notes count (guardrail driver A).
        likes:           Total likes count (guardrail driver B).
        favorites:       Total favorites count.
        comments:        Total comments count.
        yield_total:     Observed yield; ``None`` for prediction inputs.
    """

    model_config = ConfigDict(frozen=True)

    collection_days: float = 0.0
    notes: float = 0.0
    likes: float = 0.0
    favorites: float = 0.0
    comments: float = 0.0
    yield_total: Optional[float] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "YieldRecord":
        """Build a record from a raw dict, accepting aliased headers."""
        canonical = {canonical_column(k): v for k, v in row.items()}
        target = canonical.get(TARGET_COL)
        return cls(
            collection_days=to_number(canonical.get(DAYS_COL)),
            notes=to_number(canonical.get(NOTES_COL)),
            likes=to_number(canonical.get(LIKES_COL)),
            favorites=to_number(canonical.get(FAVORITES_COL)),
            comments=to_number(canonical.get(COMMENTS_COL)),
            yield_total=None if target is None else to_number(target),
        )

    @property
    def target(self) -> float:
        """Target for fitting; a record without one contributes 0."""
        return self.yield_total if self.yield_total is not None else 0.0

    def to_row(self) -> dict[str, Any]:
        """Flat dict with canonical headers (target omitted when absent)."""
        return self.model_dump(exclude_none=True)
