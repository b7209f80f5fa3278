"""Tests for repository round-trip operations using in-memory SQLite."""

from __future__ import annotations

from yield_forecaster.db.repositories.model_repo import ModelArtifactRepository
from yield_forecaster.db.repositories.record_repo import TrainingRecordRepository
from yield_forecaster.models.record import YieldRecord


# ── ModelArtifactRepository ────────────────────────────────────────────────────

class TestModelArtifactRepository:
    def test_save_and_get_round_trip(self, in_memory_db, ridge_record):
        repo = ModelArtifactRepository(in_memory_db)
        repo.save(ridge_record)
        assert repo.get("telecom") == ridge_record

    def test_boosted_round_trip(self, in_memory_db, recall_record):
        repo = ModelArtifactRepository(in_memory_db)
        repo.save(recall_record)
        restored = repo.get("recall")
        assert restored == recall_record
        assert restored.artifact.baseline == recall_record.artifact.baseline

    def test_get_missing_returns_none(self, in_memory_db):
        assert ModelArtifactRepository(in_memory_db).get("online") is None
        assert ModelArtifactRepository(in_memory_db).get_metrics("online") is None

    def test_save_replaces_existing(self, in_memory_db, ridge_record):
        repo = ModelArtifactRepository(in_memory_db)
        repo.save(ridge_record)
        newer = ridge_record.model_copy(
            update={"metrics": ridge_record.metrics.model_copy(update={"r2": 0.5})}
        )
        repo.save(newer)
        assert repo.get("telecom").metrics.r2 == 0.5
        assert repo.list_types() == ["telecom"]

    def test_metrics_columns(self, in_memory_db, ridge_record):
        repo = ModelArtifactRepository(in_memory_db)
        repo.save(ridge_record)
        assert repo.get_metrics("telecom") == ridge_record.metrics

    def test_delete(self, in_memory_db, ridge_record, recall_record):
        repo = ModelArtifactRepository(in_memory_db)
        repo.save(ridge_record)
        repo.save(recall_record)
        assert repo.list_types() == ["recall", "telecom"]
        assert repo.delete("telecom") is True
        assert repo.delete("telecom") is False
        assert repo.list_types() == ["recall"]


# ── TrainingRecordRepository ───────────────────────────────────────────────────

class TestTrainingRecordRepository:
    def test_replace_and_get_preserves_order(self, in_memory_db, sample_records):
        repo = TrainingRecordRepository(in_memory_db)
        assert repo.replace_all("online", sample_records) == len(sample_records)
        assert repo.get_all("online") == sample_records

    def test_replace_discards_previous(self, in_memory_db, sample_records):
        repo = TrainingRecordRepository(in_memory_db)
        repo.replace_all("online", sample_records)
        repo.replace_all("online", sample_records[:2])
        assert repo.count("online") == 2

    def test_types_are_isolated(self, in_memory_db, sample_records):
        repo = TrainingRecordRepository(in_memory_db)
        repo.replace_all("online", sample_records)
        repo.replace_all("recall", sample_records[:3])
        assert repo.count("online") == len(sample_records)
        assert repo.count("recall") == 3
        assert repo.get_all("telecom") == []

    def test_missing_target_persisted_as_none(self, in_memory_db):
        repo = TrainingRecordRepository(in_memory_db)
        repo.replace_all("online", [YieldRecord(collection_days=1, notes=2)])
        assert repo.get_all("online")[0].yield_total is None

    def test_delete(self, in_memory_db, sample_records):
        repo = TrainingRecordRepository(in_memory_db)
        repo.replace_all("online", sample_records)
        assert repo.delete("online") == len(sample_records)
        assert repo.count("online") == 0
