"""
Tests for yield_forecaster/pipeline/train.py.

What we test
------------
fit_profile():
  - Each default profile fits the configured family, mode and features.
  - Stored in-sample metrics agree with predictions recomputed from the
    artifact (daily-intensity outputs scaled by days).
  - Baseline coefficients only for daily-intensity boosted profiles.
  - Ridge needs n > p + 1; unknown model types raise KeyError.

train_and_persist():
  - Phase events arrive in order PARSE → DERIVE_FEATURES → FIT → PERSIST.
  - New records are appended to stored history unless merge_history=False.
  - A failure during fit or persist leaves the stored artifact and dataset
    exactly as they were.
"""

from __future__ import annotations

import pytest

from yield_forecaster.config import GuardrailConfig
from yield_forecaster.db.repositories.model_repo import ModelArtifactRepository
from yield_forecaster.db.repositories.record_repo import TrainingRecordRepository
from yield_forecaster.exceptions import EmptyDatasetError, InsufficientSamplesError
from yield_forecaster.features.schema import BOOSTED_FEATURES, RIDGE_FEATURES
from yield_forecaster.ml.baseline import BaselineCoefficients, compute_baseline_coefficients
from yield_forecaster.ml.metrics import calculate_mae, calculate_r2
from yield_forecaster.pipeline.predict import predict_records
from yield_forecaster.pipeline.progress import PHASE_ORDER, PhaseSignal
from yield_forecaster.pipeline.train import fit_profile, train_and_persist

NO_GUARDRAIL = GuardrailConfig(enabled=False)


# ── fit_profile ────────────────────────────────────────────────────────────────

class TestFitProfile:
    @pytest.mark.parametrize(
        "model_type,family,mode,features",
        [
            ("online", "boosted", "total", BOOSTED_FEATURES),
            ("recall", "boosted", "daily_intensity", BOOSTED_FEATURES),
            ("telecom", "ridge", "total", RIDGE_FEATURES),
        ],
    )
    def test_default_profiles(self, sample_records, app_config, model_type, family, mode, features):
        record = fit_profile(sample_records, model_type, app_config)
        assert record.model_type == model_type
        assert record.family == family
        assert record.mode == mode
        assert record.feature_names == features
        assert record.metrics.sample_size == len(sample_records)

    @pytest.mark.parametrize("model_type", ["online", "recall", "telecom"])
    def test_metrics_match_recomputed_predictions(self, sample_records, app_config, model_type):
        record = fit_profile(sample_records, model_type, app_config)
        preds = [p.predicted for p in predict_records(record, sample_records, NO_GUARDRAIL)]
        targets = [r.yield_total for r in sample_records]
        assert record.metrics.r2 == pytest.approx(calculate_r2(targets, preds))
        assert record.metrics.mae == pytest.approx(calculate_mae(targets, preds))

    def test_daily_intensity_embeds_baseline(self, sample_records, app_config):
        record = fit_profile(sample_records, "recall", app_config)
        assert record.artifact.baseline == compute_baseline_coefficients(sample_records)
        assert record.artifact.baseline.k_notes > 0

    def test_total_mode_has_zero_baseline(self, sample_records, app_config):
        record = fit_profile(sample_records, "online", app_config)
        assert record.artifact.baseline == BaselineCoefficients()

    def test_boosting_settings_applied(self, sample_records, app_config):
        record = fit_profile(sample_records, "online", app_config)
        assert record.artifact.n_trees == app_config.boosting.n_estimators
        assert record.artifact.learning_rate == app_config.boosting.learning_rate

    def test_ridge_alpha_applied(self, sample_records, app_config):
        record = fit_profile(sample_records, "telecom", app_config)
        assert record.artifact.alpha == app_config.ridge.alpha

    def test_ridge_too_few_records(self, sample_records, app_config):
        with pytest.raises(InsufficientSamplesError):
            fit_profile(sample_records[:6], "telecom", app_config)

    def test_boosted_accepts_tiny_dataset(self, sample_records, app_config):
        record = fit_profile(sample_records[:2], "online", app_config)
        assert record.metrics.sample_size == 2

    def test_empty_records(self, app_config):
        with pytest.raises(EmptyDatasetError):
            fit_profile([], "online", app_config)

    def test_unknown_model_type(self, sample_records, app_config):
        with pytest.raises(KeyError):
            fit_profile(sample_records, "satellite", app_config)


# ── train_and_persist ──────────────────────────────────────────────────────────

class TestTrainAndPersist:
    def test_phases_in_order(self, in_memory_db, sample_records, app_config):
        signal = PhaseSignal()
        seen = []
        signal.subscribe(lambda event: seen.append(event.phase))
        train_and_persist(in_memory_db, sample_records, "telecom", app_config, signal)
        assert seen == PHASE_ORDER
        assert signal.phases == PHASE_ORDER

    def test_persists_records_and_artifact(self, in_memory_db, sample_records, app_config):
        record = train_and_persist(in_memory_db, sample_records, "recall", app_config)
        assert ModelArtifactRepository(in_memory_db).get("recall") == record
        assert TrainingRecordRepository(in_memory_db).get_all("recall") == sample_records

    def test_history_is_merged(self, in_memory_db, app_config, record_factory):
        first, second = record_factory(8), record_factory(5, offset=8)
        train_and_persist(in_memory_db, first, "telecom", app_config)
        record = train_and_persist(in_memory_db, second, "telecom", app_config)
        assert record.metrics.sample_size == 13
        assert TrainingRecordRepository(in_memory_db).get_all("telecom") == first + second

    def test_history_replaced_without_merge(self, in_memory_db, app_config, record_factory):
        train_and_persist(in_memory_db, record_factory(8), "online", app_config)
        record = train_and_persist(
            in_memory_db, record_factory(3), "online", app_config, merge_history=False
        )
        assert record.metrics.sample_size == 3
        assert TrainingRecordRepository(in_memory_db).count("online") == 3

    def test_failed_fit_keeps_previous_state(self, in_memory_db, sample_records, app_config):
        original = train_and_persist(in_memory_db, sample_records, "telecom", app_config)
        with pytest.raises(InsufficientSamplesError):
            train_and_persist(
                in_memory_db, sample_records[:3], "telecom", app_config, merge_history=False
            )
        assert ModelArtifactRepository(in_memory_db).get("telecom") == original
        assert TrainingRecordRepository(in_memory_db).count("telecom") == len(sample_records)

    def test_failed_persist_rolls_back(
        self, in_memory_db, sample_records, app_config, record_factory, monkeypatch
    ):
        original = train_and_persist(in_memory_db, sample_records, "online", app_config)

        def _boom(self, record):
            raise RuntimeError("disk full")

        monkeypatch.setattr(ModelArtifactRepository, "save", _boom)
        with pytest.raises(RuntimeError):
            train_and_persist(in_memory_db, record_factory(4, offset=20), "online", app_config)
        monkeypatch.undo()

        assert ModelArtifactRepository(in_memory_db).get("online") == original
        assert TrainingRecordRepository(in_memory_db).get_all("online") == sample_records

    def test_empty_new_records(self, in_memory_db, app_config):
        with pytest.raises(EmptyDatasetError):
            train_and_persist(in_memory_db, [], "online", app_config)
