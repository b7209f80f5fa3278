"""
Training orchestration: records in, persisted ``ModelRecord`` out.

``fit_profile()`` is pure compute. It derives the profile's feature matrix,
normalizes the target for the profile's training mode, fits the family's
model and scores it in-sample against the raw total target.

``train_and_persist()`` wraps it in the atomic batch:
  1. PARSE            read stored history for the model type and append the
                      new records (unless ``merge_history=False``).
  2. DERIVE_FEATURES  build the dense feature matrix.
  3. FIT              fit and score; nothing has been written yet.
  4. PERSIST          replace stored records and artifact inside one
                      transaction.

A failure in any phase leaves the previously stored artifact and dataset
untouched and authoritative.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from yield_forecaster.config import AppConfig
from yield_forecaster.db.repositories.model_repo import ModelArtifactRepository
from yield_forecaster.db.repositories.record_repo import TrainingRecordRepository
from yield_forecaster.exceptions import EmptyDatasetError
from yield_forecaster.features.schema import (
    DEFAULT_FEATURES,
    build_feature_matrix,
    output_scale,
    training_target,
)
from yield_forecaster.ml.baseline import BaselineCoefficients, compute_baseline_coefficients
from yield_forecaster.ml.boosting import train_ensemble
from yield_forecaster.ml.metrics import calculate_mae, calculate_r2
from yield_forecaster.ml.ridge import train_ridge
from yield_forecaster.models.artifact import ModelRecord, TrainingMetrics
from yield_forecaster.models.record import YieldRecord
from yield_forecaster.pipeline.predict import point_prediction
from yield_forecaster.pipeline.progress import PhaseSignal, TrainingPhase, ensure_signal
from yield_forecaster.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def fit_profile(
    records: list[YieldRecord],
    model_type: str,
    config: AppConfig,
    signal: Optional[PhaseSignal] = None,
) -> ModelRecord:
    """Fit the model configured for ``model_type`` on ``records``.

    Raises:
        KeyError:                 Unknown ``model_type``.
        EmptyDatasetError:        ``records`` is empty.
        InsufficientSamplesError: Too few records for a ridge fit.
        NonFiniteResultError:     The fit diverged.
    """
    profile = config.models.get(model_type)
    signal = ensure_signal(signal)
    if not records:
        raise EmptyDatasetError(f"No training records for '{model_type}'.")

    feature_names = list(profile.feature_names or DEFAULT_FEATURES[profile.family])
    signal.emit(model_type, TrainingPhase.DERIVE_FEATURES, f"{len(feature_names)} features")
    X = build_feature_matrix(records, feature_names)
    y = [training_target(r, profile.mode) for r in records]

    signal.emit(model_type, TrainingPhase.FIT, f"{profile.family} on {len(records)} records")
    if profile.family == "ridge":
        artifact = train_ridge(X, y, alpha=config.ridge.alpha, feature_names=feature_names)
    else:
        baseline = (
            compute_baseline_coefficients(records)
            if profile.mode == "daily_intensity"
            else BaselineCoefficients()
        )
        artifact = train_ensemble(
            X,
            y,
            feature_names=feature_names,
            n_estimators=config.boosting.n_estimators,
            learning_rate=config.boosting.learning_rate,
            max_depth=config.boosting.max_depth,
            min_split_samples=config.boosting.min_split_samples,
            baseline=baseline,
        )

    y_true = [r.target for r in records]
    y_pred = [
        point_prediction(artifact, row) * output_scale(r, profile.mode)
        for row, r in zip(X, records)
    ]
    metrics = TrainingMetrics(
        r2=calculate_r2(y_true, y_pred),
        mae=calculate_mae(y_true, y_pred),
        sample_size=len(records),
    )
    logger.info(
        "Trained '%s' (%s, %s): n=%d R2=%.4f MAE=%.4f",
        model_type, profile.family, profile.mode, metrics.sample_size, metrics.r2, metrics.mae,
    )
    return ModelRecord(
        model_type=model_type,
        mode=profile.mode,
        artifact=artifact,
        metrics=metrics,
        trained_at=utcnow(),
    )


def train_and_persist(
    conn: sqlite3.Connection,
    new_records: list[YieldRecord],
    model_type: str,
    config: AppConfig,
    signal: Optional[PhaseSignal] = None,
    merge_history: bool = True,
) -> ModelRecord:
    """Merge, fit and atomically persist a model type's dataset and artifact.

    Args:
        conn:          Open connection with the schema applied.
        new_records:   Records supplied for this run.
        model_type:    Profile slug.
        config:        Application config.
        signal:        Optional progress channel.
        merge_history: Append to the stored dataset instead of replacing it.

    Returns:
        The newly persisted ``ModelRecord``.
    """
    config.models.get(model_type)
    signal = ensure_signal(signal)
    if not new_records:
        raise EmptyDatasetError(f"No training records supplied for '{model_type}'.")

    record_repo = TrainingRecordRepository(conn)
    history = record_repo.get_all(model_type) if merge_history else []
    dataset = history + list(new_records)
    signal.emit(
        model_type,
        TrainingPhase.PARSE,
        f"{len(new_records)} new + {len(history)} stored records",
    )

    model_record = fit_profile(dataset, model_type, config, signal)

    signal.emit(model_type, TrainingPhase.PERSIST, f"{len(dataset)} records")
    with conn:
        record_repo.replace_all(model_type, dataset)
        ModelArtifactRepository(conn).save(model_record)

    return model_record
