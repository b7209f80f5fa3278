"""
Backup bundle: every model type's artifact and training data in one document.

Bundle layout (JSON)::

    {
      "<model_type>": {
        "model": { ...ModelRecord... } | null,
        "data":  [ {collection_days, notes, likes, favorites, comments,
                    yield_total}, ... ]
      },
      ...
    }

Restoring a model type:
  - ``model`` present → store it as-is together with ``data`` (an empty
                         ``data`` list keeps the stored history).
  - only ``data``      → retrain from it (history is replaced, not merged).
  - neither / absent   → nothing happens; ``None`` is returned.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional

from yield_forecaster.config import AppConfig
from yield_forecaster.db.repositories.model_repo import ModelArtifactRepository
from yield_forecaster.db.repositories.record_repo import TrainingRecordRepository
from yield_forecaster.models.artifact import ModelRecord
from yield_forecaster.models.record import YieldRecord
from yield_forecaster.pipeline.progress import PhaseSignal
from yield_forecaster.pipeline.train import train_and_persist

logger = logging.getLogger(__name__)

Bundle = dict[str, dict[str, Any]]


def export_bundle(conn: sqlite3.Connection, model_types: list[str]) -> Bundle:
    """Collect stored artifacts and datasets for ``model_types``.

    Types with neither an artifact nor data are omitted.
    """
    model_repo = ModelArtifactRepository(conn)
    record_repo = TrainingRecordRepository(conn)

    bundle: Bundle = {}
    for model_type in model_types:
        model = model_repo.get(model_type)
        data = record_repo.get_all(model_type)
        if model is None and not data:
            continue
        bundle[model_type] = {
            "model": model.model_dump(mode="json") if model is not None else None,
            "data": [r.to_row() for r in data],
        }
    logger.info("Exported bundle with %d model type(s): %s", len(bundle), sorted(bundle))
    return bundle


def restore_bundle(
    conn: sqlite3.Connection,
    bundle: Bundle,
    model_type: str,
    config: AppConfig,
    signal: Optional[PhaseSignal] = None,
) -> Optional[ModelRecord]:
    """Restore one model type from ``bundle``.

    Returns:
        The stored or retrained ``ModelRecord``, or ``None`` when the bundle
        has nothing for ``model_type``.
    """
    entry = bundle.get(model_type) or {}
    data = [YieldRecord.from_row(row) for row in entry.get("data") or []]
    model_payload = entry.get("model")

    if model_payload:
        model = ModelRecord.model_validate(model_payload)
        if model.model_type != model_type:
            model = model.model_copy(update={"model_type": model_type})
        with conn:
            if data:
                TrainingRecordRepository(conn).replace_all(model_type, data)
            ModelArtifactRepository(conn).save(model)
        logger.info("Restored '%s' artifact and %d records from bundle", model_type, len(data))
        return model

    if data:
        logger.info("Bundle has no '%s' artifact; retraining from %d records", model_type, len(data))
        return train_and_persist(conn, data, model_type, config, signal, merge_history=False)

    logger.info("Bundle has nothing for '%s'", model_type)
    return None


def write_bundle(path: Path, bundle: Bundle) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(bundle, ensure_ascii=False, indent=2), encoding="utf-8")
    return path


def read_bundle(path: Path) -> Bundle:
    """Load a bundle file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError:        If the file is not a JSON object.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Bundle file not found: {path}")
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Bundle must be a JSON object keyed by model type: {path}")
    return payload
