"""
Repository for accumulated training records, grouped by model type.
"""

from __future__ import annotations

import logging

from yield_forecaster.db.repositories.base import BaseRepository
from yield_forecaster.models.record import YieldRecord

logger = logging.getLogger(__name__)


class TrainingRecordRepository(BaseRepository):
    """Read/write access to ``training_records``."""

    def replace_all(self, model_type: str, records: list[YieldRecord]) -> int:
        """Replace the stored dataset for ``model_type`` with ``records``.

        Returns:
            Number of records written.
        """
        self.delete(model_type)
        self.executemany(
            """
            INSERT INTO training_records (
                model_type, position, collection_days, notes, likes,
                favorites, comments, yield_total
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?);
            """,
            [
                (
                    model_type,
                    position,
                    r.collection_days,
                    r.notes,
                    r.likes,
                    r.favorites,
                    r.comments,
                    r.yield_total,
                )
                for position, r in enumerate(records)
            ],
        )
        logger.debug("Stored %d training records for '%s'", len(records), model_type)
        return len(records)

    def get_all(self, model_type: str) -> list[YieldRecord]:
        """Stored records in insertion order (empty list when none)."""
        rows = self.fetchall(
            """
            SELECT collection_days, notes, likes, favorites, comments, yield_total
            FROM training_records
            WHERE model_type = ?
            ORDER BY position;
            """,
            (model_type,),
        )
        return [YieldRecord(**dict(row)) for row in rows]

    def count(self, model_type: str) -> int:
        row = self.fetchone(
            "SELECT COUNT(*) AS n FROM training_records WHERE model_type = ?;",
            (model_type,),
        )
        return int(row["n"]) if row is not None else 0

    def delete(self, model_type: str) -> int:
        """Remove every stored record for ``model_type``; returns rows deleted."""
        cursor = self.execute(
            "DELETE FROM training_records WHERE model_type = ?;", (model_type,)
        )
        return cursor.rowcount
