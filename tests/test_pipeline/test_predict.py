"""
Tests for yield_forecaster/pipeline/predict.py.

What we test
------------
- One prediction per input record, in input order, with ordered bounds.
- Daily-intensity outputs are scaled by collection days (days <= 0 → 0).
- The guardrail only touches boosted daily-intensity artifacts.
- A hand-built constant ensemble clips exactly as the guardrail band says.
- Wider confidence → wider band.
- load_model() raises ModelNotTrainedError for untrained types.
"""

from __future__ import annotations

import pytest

from yield_forecaster.config import GuardrailConfig
from yield_forecaster.exceptions import ModelNotTrainedError
from yield_forecaster.features.schema import BOOSTED_FEATURES
from yield_forecaster.ml.baseline import BaselineCoefficients
from yield_forecaster.ml.boosting import BoostedEnsemble
from yield_forecaster.models.artifact import ModelRecord, TrainingMetrics
from yield_forecaster.models.record import YieldRecord
from yield_forecaster.pipeline.predict import (
    guardrail_applies,
    load_model,
    predict_records,
)
from yield_forecaster.pipeline.train import train_and_persist
from yield_forecaster.utils.time_utils import utcnow


def _constant_record(mode: str = "daily_intensity", bias: float = 5.0) -> ModelRecord:
    """Zero-tree ensemble predicting ``bias`` with baseline rate 0.02 per note."""
    ensemble = BoostedEnsemble(
        initial_bias=bias,
        learning_rate=0.1,
        trees=[],
        residual_std=0.0,
        feature_names=BOOSTED_FEATURES,
        baseline=BaselineCoefficients(k_notes=0.02, k_likes=0.0),
    )
    return ModelRecord(
        model_type="recall",
        mode=mode,
        artifact=ensemble,
        metrics=TrainingMetrics(r2=0.0, mae=0.0, sample_size=1),
        trained_at=utcnow(),
    )


INPUT = YieldRecord(collection_days=2, notes=100, likes=50)


# ── Basic shape ───────────────────────────────────────────────────────────────

class TestPredictRecords:
    def test_one_prediction_per_record(self, ridge_record, sample_records):
        preds = predict_records(ridge_record, sample_records, GuardrailConfig())
        assert len(preds) == len(sample_records)
        assert [p.record for p in preds] == sample_records

    def test_bounds_ordered(self, recall_record, sample_records):
        for p in predict_records(recall_record, sample_records, GuardrailConfig()):
            assert 0.0 <= p.lower_bound <= p.upper_bound

    def test_wider_confidence_wider_band(self, ridge_record, sample_records):
        narrow = predict_records(ridge_record, sample_records[:1], GuardrailConfig(), 0.80)[0]
        wide = predict_records(ridge_record, sample_records[:1], GuardrailConfig(), 0.95)[0]
        assert wide.upper_bound - wide.predicted > narrow.upper_bound - narrow.predicted

    def test_targets_ignored(self, ridge_record):
        with_target = YieldRecord(collection_days=4, notes=60, likes=150, yield_total=999.0)
        without = with_target.model_copy(update={"yield_total": None})
        guard = GuardrailConfig()
        assert (
            predict_records(ridge_record, [with_target], guard)[0].predicted
            == predict_records(ridge_record, [without], guard)[0].predicted
        )


# ── Daily-intensity scaling ───────────────────────────────────────────────────

class TestDailyScaling:
    def test_scaled_by_days(self):
        record = _constant_record()
        guard = GuardrailConfig(enabled=False)
        one_day = predict_records(record, [INPUT.model_copy(update={"collection_days": 1})], guard)[0]
        three_days = predict_records(record, [INPUT.model_copy(update={"collection_days": 3})], guard)[0]
        assert one_day.predicted == pytest.approx(5.0)
        assert three_days.predicted == pytest.approx(15.0)

    def test_zero_days_predicts_zero(self):
        record = _constant_record()
        pred = predict_records(record, [INPUT.model_copy(update={"collection_days": 0})], GuardrailConfig())[0]
        assert pred.predicted == 0.0
        assert pred.lower_bound == 0.0
        assert pred.upper_bound == 0.0

    def test_total_mode_not_scaled(self):
        record = _constant_record(mode="total")
        pred = predict_records(record, [INPUT], GuardrailConfig(enabled=False))[0]
        assert pred.predicted == pytest.approx(5.0)


# ── Guardrail routing ─────────────────────────────────────────────────────────

class TestGuardrailRouting:
    def test_applies_only_to_boosted_daily(self, ridge_record, recall_record):
        assert guardrail_applies(recall_record)
        assert not guardrail_applies(ridge_record)
        assert not guardrail_applies(_constant_record(mode="total"))

    def test_clips_to_upper_limit(self):
        # baseline per day = (0.02 * 100 + 0 * 50) / 2 = 1.0 → band [0.3, 1.7]
        pred = predict_records(_constant_record(), [INPUT], GuardrailConfig())[0]
        assert pred.clipped is True
        assert pred.predicted == pytest.approx(3.4)
        assert pred.raw_value == pytest.approx(10.0)

    def test_clips_to_lower_limit(self):
        pred = predict_records(_constant_record(bias=0.1), [INPUT], GuardrailConfig())[0]
        assert pred.clipped is True
        assert pred.predicted == pytest.approx(0.6)

    def test_inside_band_untouched(self):
        pred = predict_records(_constant_record(bias=1.2), [INPUT], GuardrailConfig())[0]
        assert pred.clipped is False
        assert pred.predicted == pytest.approx(2.4)

    def test_disabled_passes_raw(self):
        pred = predict_records(_constant_record(), [INPUT], GuardrailConfig(enabled=False))[0]
        assert pred.clipped is False
        assert pred.predicted == pytest.approx(10.0)

    def test_total_mode_bypasses_guardrail(self):
        pred = predict_records(_constant_record(mode="total"), [INPUT], GuardrailConfig())[0]
        assert pred.clipped is False
        assert pred.predicted == pytest.approx(5.0)

    def test_custom_band(self):
        guard = GuardrailConfig(low_percent=50.0, high_percent=200.0)
        pred = predict_records(_constant_record(), [INPUT], guard)[0]
        assert pred.predicted == pytest.approx(4.0)


# ── load_model ────────────────────────────────────────────────────────────────

class TestLoadModel:
    def test_missing_model(self, in_memory_db):
        with pytest.raises(ModelNotTrainedError):
            load_model(in_memory_db, "recall")

    def test_returns_stored_model(self, in_memory_db, sample_records, app_config):
        trained = train_and_persist(in_memory_db, sample_records, "recall", app_config)
        assert load_model(in_memory_db, "recall") == trained
