"""
Model summary for a stored artifact.

``build_model_summary()`` turns a ``ModelRecord`` into a flat, JSON-ready
dict; ``format_model_summary()`` renders it as ASCII lines for
``typer.echo()``. Metrics are rounded to 4 decimal places.

Family-specific details:
  ridge    intercept, per-feature weights (standardized units), alpha,
           whether the inverse was approximate.
  boosted  tree count, learning rate, max depth, and the guardrail baseline
           coefficients when the model was trained on daily intensity.
"""

from __future__ import annotations

from typing import Any

from yield_forecaster.config import ProfileConfig
from yield_forecaster.ml.boosting import BoostedEnsemble
from yield_forecaster.models.artifact import ModelRecord


def build_model_summary(record: ModelRecord, profile: ProfileConfig) -> dict[str, Any]:
    artifact = record.artifact
    summary: dict[str, Any] = {
        "model_type": record.model_type,
        "display_name": profile.display_name,
        "family": record.family,
        "mode": record.mode,
        "sample_size": record.metrics.sample_size,
        "r2": round(record.metrics.r2, 4),
        "mae": round(record.metrics.mae, 4),
        "residual_std": round(artifact.residual_std, 4),
        "trained_at": record.trained_at.isoformat(),
        "features": record.feature_names,
    }

    if isinstance(artifact, BoostedEnsemble):
        details: dict[str, Any] = {
            "n_trees": artifact.n_trees,
            "learning_rate": artifact.learning_rate,
            "max_depth": artifact.max_depth,
        }
        if record.mode == "daily_intensity":
            details["baseline_k_notes"] = artifact.baseline.k_notes
            details["baseline_k_likes"] = artifact.baseline.k_likes
    else:
        details = {
            "intercept": round(artifact.intercept, 4),
            "weights": {
                name: round(w, 4) for name, w in zip(artifact.feature_names, artifact.weights)
            },
            "alpha": artifact.alpha,
            "pivot_clamped": artifact.pivot_clamped,
        }
    summary["details"] = details
    return summary


def format_model_summary(summary: dict[str, Any]) -> str:
    lines = [
        f"  {summary['display_name']} [{summary['model_type']}]",
        f"  Family / mode:   {summary['family']} / {summary['mode']}",
        f"  Samples:         {summary['sample_size']}",
        f"  R2:              {summary['r2']:.4f}",
        f"  MAE:             {summary['mae']:.4f}",
        f"  Residual std:    {summary['residual_std']:.4f}",
        f"  Trained at:      {summary['trained_at']}",
        f"  Features:        {', '.join(summary['features'])}",
    ]
    for key, value in summary["details"].items():
        if isinstance(value, dict):
            lines.append(f"  {key}:")
            lines.extend(f"    {name:<18} {v}" for name, v in value.items())
        else:
            lines.append(f"  {key + ':':<17}{value}")
    return "\n".join(lines)
