"""
Robust per-day rate baseline.

For every training record two ratios are computed::

    ratio_notes = yield / (max(1, days) · max(1, notes))
    ratio_likes = yield / (max(1, days) · max(1, likes))

and each coefficient is the median of its ratio sequence, floored at 0.
Medians keep a handful of extreme rows from dragging the baseline, which
matters at the sample sizes this model is trained on (tens of rows).

The coefficients are only consumed by the guardrail band in ``guardrail.py``.
"""

from __future__ import annotations

import logging
import statistics

from pydantic import BaseModel, ConfigDict, Field

from yield_forecaster.exceptions import EmptyDatasetError
from yield_forecaster.models.record import YieldRecord

logger = logging.getLogger(__name__)


class BaselineCoefficients(BaseModel):
    """Median yield per day per unit of each guardrail driver.

    Attributes:
        k_notes: Coefficient for the notes count (driver A).
        k_likes: Coefficient for the likes count (driver B).
    """

    model_config = ConfigDict(frozen=True)

    k_notes: float = Field(default=0.0, ge=0.0)
    k_likes: float = Field(default=0.0, ge=0.0)


def _rate(target: float, days: float, count: float) -> float:
    return target / (max(1.0, days) * max(1.0, count))


def compute_baseline_coefficients(records: list[YieldRecord]) -> BaselineCoefficients:
    """Median per-record ratios of target to (days · driver count).

    Raises:
        EmptyDatasetError: If ``records`` is empty.
    """
    if not records:
        raise EmptyDatasetError("Baseline coefficients need at least one record.")

    notes_rates = [_rate(r.target, r.collection_days, r.notes) for r in records]
    likes_rates = [_rate(r.target, r.collection_days, r.likes) for r in records]

    coefficients = BaselineCoefficients(
        k_notes=max(0.0, statistics.median(notes_rates)),
        k_likes=max(0.0, statistics.median(likes_rates)),
    )
    logger.debug(
        "Baseline coefficients from %d records: k_notes=%.6g k_likes=%.6g",
        len(records), coefficients.k_notes, coefficients.k_likes,
    )
    return coefficients
