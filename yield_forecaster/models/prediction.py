"""
Prediction output model.

One ``YieldPrediction`` per input record: the final point forecast, its band,
and whether the guardrail clipped it. Values are kept as floats; ``to_row()``
rounds half up for export, matching how yields are reported (whole units).
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from yield_forecaster.models.record import YieldRecord


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (``round()`` is banker's)."""
    return int(math.floor(value + 0.5))


class YieldPrediction(BaseModel):
    """Forecast for one input record.

    Attributes:
        record:      The input record (target usually absent).
        predicted:   Point forecast in total-yield units.
        lower_bound: Band lower bound (>= 0).
        upper_bound: Band upper bound (>= lower_bound).
        raw_value:   Model output before the guardrail, in total-yield units.
        clipped:     True when the guardrail moved the forecast.
    """

    model_config = ConfigDict(frozen=True)

    record: YieldRecord
    predicted: float
    lower_bound: float
    upper_bound: float
    raw_value: float
    clipped: bool = False

    @model_validator(mode="after")
    def validate_band(self) -> "YieldPrediction":
        if self.lower_bound < 0:
            raise ValueError("lower_bound must be non-negative.")
        if self.lower_bound > self.upper_bound:
            raise ValueError(
                f"lower_bound ({self.lower_bound}) must be <= "
                f"upper_bound ({self.upper_bound})."
            )
        return self

    def to_row(self) -> dict[str, Any]:
        """Input columns plus rounded forecast columns (``clipped`` is not exported)."""
        row = self.record.to_row()
        row.update(
            predicted_yield=round_half_up(self.predicted),
            lower_bound=round_half_up(self.lower_bound),
            upper_bound=round_half_up(self.upper_bound),
        )
        return row
