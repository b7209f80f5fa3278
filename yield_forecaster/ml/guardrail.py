"""
Guardrail predictor: clamp a boosted prediction into a baseline band.

With the guardrail enabled::

    baseline = (k_notes · notes + k_likes · likes) / 2
    band     = [baseline · low_percent / 100, baseline · high_percent / 100]

A raw prediction below the band is raised to the lower limit, one above it
is lowered to the upper limit, and either case sets ``clipped``. Inside the
band (limits inclusive) the raw value passes through unchanged. With the
guardrail disabled the raw value always passes through and ``clipped`` is
False.

The baseline is a per-day rate, so the band is only meaningful for models
trained on daily-intensity targets; callers decide when to enable it.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict

from yield_forecaster.config import GuardrailConfig
from yield_forecaster.ml.baseline import BaselineCoefficients
from yield_forecaster.ml.boosting import BoostedEnsemble, predict_raw

logger = logging.getLogger(__name__)


class GuardrailResult(BaseModel):
    """Outcome of one guarded prediction.

    ``lower_limit``/``upper_limit`` are None when the guardrail was disabled.
    """

    model_config = ConfigDict(frozen=True)

    value: float
    raw_value: float
    clipped: bool = False
    lower_limit: Optional[float] = None
    upper_limit: Optional[float] = None


def baseline_value(coefficients: BaselineCoefficients, notes_count: float, likes_count: float) -> float:
    return (coefficients.k_notes * notes_count + coefficients.k_likes * likes_count) / 2


def baseline_band(
    coefficients: BaselineCoefficients,
    notes_count: float,
    likes_count: float,
    low_percent: float,
    high_percent: float,
) -> tuple[float, float]:
    """``(lower, upper)`` limits around the baseline for one record."""
    baseline = baseline_value(coefficients, notes_count, likes_count)
    return baseline * low_percent / 100, baseline * high_percent / 100


def apply_guardrail(
    raw_value: float,
    coefficients: BaselineCoefficients,
    notes_count: float,
    likes_count: float,
    config: GuardrailConfig,
) -> GuardrailResult:
    """Clamp an already-computed prediction to the baseline band."""
    if not config.enabled:
        return GuardrailResult(value=raw_value, raw_value=raw_value)

    lower, upper = baseline_band(
        coefficients, notes_count, likes_count, config.low_percent, config.high_percent
    )
    if raw_value < lower:
        value, clipped = lower, True
    elif raw_value > upper:
        value, clipped = upper, True
    else:
        value, clipped = raw_value, False

    if clipped:
        logger.debug(
            "Guardrail clipped %.6g to %.6g (band [%.6g, %.6g])", raw_value, value, lower, upper
        )
    return GuardrailResult(
        value=value,
        raw_value=raw_value,
        clipped=clipped,
        lower_limit=lower,
        upper_limit=upper,
    )


def predict_with_guardrail(
    ensemble: BoostedEnsemble,
    x: list[float],
    notes_count: float,
    likes_count: float,
    config: GuardrailConfig,
) -> GuardrailResult:
    """Raw ensemble prediction for ``x``, clamped by the ensemble's own baseline."""
    return apply_guardrail(
        predict_raw(ensemble, x), ensemble.baseline, notes_count, likes_count, config
    )
