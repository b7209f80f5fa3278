"""
Repository for trained model artifacts (one per model type).
"""

from __future__ import annotations

import logging
from typing import Optional

from yield_forecaster.db.repositories.base import BaseRepository
from yield_forecaster.models.artifact import ModelRecord, TrainingMetrics

logger = logging.getLogger(__name__)


class ModelArtifactRepository(BaseRepository):
    """Read/write access to ``model_artifacts``."""

    def save(self, record: ModelRecord) -> None:
        """Insert or replace the artifact stored for ``record.model_type``."""
        self.execute(
            """
            INSERT INTO model_artifacts (
                model_type, family, mode, record_json,
                r2, mae, sample_size, trained_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(model_type) DO UPDATE SET
                family      = excluded.family,
                mode        = excluded.mode,
                record_json = excluded.record_json,
                r2          = excluded.r2,
                mae         = excluded.mae,
                sample_size = excluded.sample_size,
                trained_at  = excluded.trained_at;
            """,
            (
                record.model_type,
                record.family,
                record.mode,
                record.to_json(),
                record.metrics.r2,
                record.metrics.mae,
                record.metrics.sample_size,
                record.trained_at.isoformat(),
            ),
        )
        logger.debug("Saved %s artifact for '%s'", record.family, record.model_type)

    def get(self, model_type: str) -> Optional[ModelRecord]:
        """Return the stored artifact, or ``None`` when the type was never trained."""
        row = self.fetchone(
            "SELECT record_json FROM model_artifacts WHERE model_type = ?;",
            (model_type,),
        )
        if row is None:
            return None
        return ModelRecord.from_json(row["record_json"])

    def get_metrics(self, model_type: str) -> Optional[TrainingMetrics]:
        """Stored metrics without deserializing the artifact."""
        row = self.fetchone(
            "SELECT r2, mae, sample_size FROM model_artifacts WHERE model_type = ?;",
            (model_type,),
        )
        if row is None:
            return None
        return TrainingMetrics(r2=row["r2"], mae=row["mae"], sample_size=row["sample_size"])

    def delete(self, model_type: str) -> bool:
        """Remove the artifact; returns True when a row was deleted."""
        cursor = self.execute(
            "DELETE FROM model_artifacts WHERE model_type = ?;", (model_type,)
        )
        return cursor.rowcount > 0

    def list_types(self) -> list[str]:
        rows = self.fetchall("SELECT model_type FROM model_artifacts ORDER BY model_type;")
        return [row["model_type"] for row in rows]
