"""
Symmetric prediction bands built from a model's residual standard deviation.

Both model families store the spread of their training residuals. A forecast
band is ``center ± z · residual_std`` where ``z`` is the two-sided Gaussian
quantile for the configured confidence level (0.80 → 1.28). The lower bound
is floored at 0 because yield is a non-negative count.

These bands assume roughly Gaussian, homoscedastic residuals; they are
in-sample estimates, not calibrated coverage guarantees.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, model_validator

# z-score for two-sided intervals: P(|Z| <= 1.28) ≈ 0.80
_Z_LOOKUP: dict[float, float] = {
    0.50: 0.674,
    0.80: 1.280,
    0.90: 1.645,
    0.95: 1.960,
    0.99: 2.576,
}
_DEFAULT_Z = 1.280


class PredictionInterval(BaseModel):
    """Point forecast with its band. ``lower_bound`` is never negative."""

    model_config = ConfigDict(frozen=True)

    mean: float
    lower_bound: float
    upper_bound: float

    @model_validator(mode="after")
    def validate_band(self) -> "PredictionInterval":
        if self.lower_bound < 0.0:
            raise ValueError("lower_bound must be non-negative.")
        if self.lower_bound > self.upper_bound:
            raise ValueError(
                f"lower_bound ({self.lower_bound}) must be <= "
                f"upper_bound ({self.upper_bound})."
            )
        return self

    def scaled(self, factor: float) -> "PredictionInterval":
        """Multiply every bound by a non-negative ``factor`` (e.g. collection days)."""
        factor = max(0.0, factor)
        return PredictionInterval(
            mean=self.mean * factor,
            lower_bound=self.lower_bound * factor,
            upper_bound=self.upper_bound * factor,
        )


def z_for_confidence(confidence_pct: float) -> float:
    """Two-sided z multiplier for a tabulated confidence level (fallback 1.28)."""
    return _Z_LOOKUP.get(round(confidence_pct, 2), _DEFAULT_Z)


def symmetric_interval(
    center: float,
    residual_std: float,
    confidence_pct: float = 0.80,
) -> PredictionInterval:
    """Build ``center ± z · residual_std`` with the lower bound floored at 0.

    Args:
        center:         Point forecast.
        residual_std:   Training residual standard deviation (>= 0).
        confidence_pct: Central coverage of the band (default 0.80).

    Returns:
        PredictionInterval with ``mean=center``.
    """
    margin = z_for_confidence(confidence_pct) * max(0.0, residual_std)
    lower = max(0.0, center - margin)
    # upper never falls below the floored lower bound
    upper = max(lower, center + margin)
    return PredictionInterval(mean=center, lower_bound=lower, upper_bound=upper)
