"""
Prediction orchestration: stored ``ModelRecord`` + input records → forecasts.

Per record:
  1. Build the feature vector in the artifact's stored feature order.
  2. Compute the model output in training units (per day for
     ``daily_intensity`` artifacts, total yield otherwise).
  3. Boosted daily-intensity artifacts pass through the guardrail; every
     other combination bypasses it (its baseline is a per-day rate).
  4. Build the ``center ± z·residual_std`` band around the final value.
  5. Scale value, raw value and band back to total yield
     (× collection days for daily-intensity artifacts).
"""

from __future__ import annotations

import logging
import sqlite3

from yield_forecaster.config import GuardrailConfig
from yield_forecaster.db.repositories.model_repo import ModelArtifactRepository
from yield_forecaster.exceptions import ModelNotTrainedError
from yield_forecaster.features.schema import feature_vector, output_scale
from yield_forecaster.ml.boosting import BoostedEnsemble, predict_raw
from yield_forecaster.ml.guardrail import predict_with_guardrail
from yield_forecaster.ml.intervals import symmetric_interval
from yield_forecaster.ml.ridge import RidgeModel, predict_point
from yield_forecaster.models.artifact import ModelRecord
from yield_forecaster.models.prediction import YieldPrediction
from yield_forecaster.models.record import YieldRecord

logger = logging.getLogger(__name__)


def point_prediction(artifact: RidgeModel | BoostedEnsemble, x: list[float]) -> float:
    """Unguarded model output for ``x`` in training units."""
    if isinstance(artifact, RidgeModel):
        return predict_point(artifact, x)
    return predict_raw(artifact, x)


def guardrail_applies(model_record: ModelRecord) -> bool:
    """True for boosted artifacts trained on daily-intensity targets."""
    return model_record.family == "boosted" and model_record.mode == "daily_intensity"


def load_model(conn: sqlite3.Connection, model_type: str) -> ModelRecord:
    """Fetch the stored artifact for ``model_type``.

    Raises:
        ModelNotTrainedError: If nothing is stored for that type.
    """
    record = ModelArtifactRepository(conn).get(model_type)
    if record is None:
        raise ModelNotTrainedError(
            f"No trained model for '{model_type}'. Run `yield-forecaster train` first."
        )
    return record


def predict_records(
    model_record: ModelRecord,
    records: list[YieldRecord],
    guardrail: GuardrailConfig,
    confidence_pct: float = 0.80,
) -> list[YieldPrediction]:
    """Forecast every record with ``model_record``.

    Args:
        model_record:   Stored artifact to serve.
        records:        Input records (targets are ignored).
        guardrail:      Guardrail settings; ignored when the guardrail does
                        not apply to this artifact.
        confidence_pct: Central coverage of the band.
    """
    artifact = model_record.artifact
    names = model_record.feature_names
    if not guardrail_applies(model_record) and guardrail.enabled:
        guardrail = guardrail.model_copy(update={"enabled": False})

    predictions: list[YieldPrediction] = []
    n_clipped = 0
    for record in records:
        x = feature_vector(record, names)
        if isinstance(artifact, BoostedEnsemble):
            result = predict_with_guardrail(artifact, x, record.notes, record.likes, guardrail)
            raw, value, clipped = result.raw_value, result.value, result.clipped
        else:
            raw = value = predict_point(artifact, x)
            clipped = False

        scale = output_scale(record, model_record.mode)
        band = symmetric_interval(value, artifact.residual_std, confidence_pct).scaled(scale)
        predictions.append(
            YieldPrediction(
                record=record,
                predicted=band.mean,
                lower_bound=band.lower_bound,
                upper_bound=band.upper_bound,
                raw_value=raw * max(0.0, scale),
                clipped=clipped,
            )
        )
        n_clipped += clipped

    logger.info(
        "Predicted %d records with '%s' (%d clipped by guardrail)",
        len(predictions), model_record.model_type, n_clipped,
    )
    return predictions
