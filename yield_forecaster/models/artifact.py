"""
Persisted model artifact models.

``ModelRecord`` is the one object stored per model type: the trained artifact
(a ridge model or a boosted ensemble, discriminated on ``family``), the
training mode it was fitted under, and its in-sample fit metrics.

The whole record serializes to flat JSON (numbers, booleans, strings; trees
as nested objects), which is what the database and the backup bundle store.
Both are frozen; retraining produces a new record rather than mutating the
stored one.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from yield_forecaster.config import TrainingMode
from yield_forecaster.ml.boosting import BoostedEnsemble
from yield_forecaster.ml.ridge import RidgeModel

ModelArtifact = Annotated[Union[RidgeModel, BoostedEnsemble], Field(discriminator="family")]


class TrainingMetrics(BaseModel):
    """In-sample fit quality, measured against the raw (total) target.

    Attributes:
        r2:          Coefficient of determination.
        mae:         Mean absolute error in yield units.
        sample_size: Number of training records.
    """

    model_config = ConfigDict(frozen=True)

    r2: float
    mae: float
    sample_size: int

    @field_validator("sample_size")
    @classmethod
    def validate_sample_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"sample_size must be >= 1, got {v}.")
        return v


class ModelRecord(BaseModel):
    """Trained artifact plus the context needed to serve it.

    Attributes:
        model_type: Profile slug, e.g. ``"recall"``.
        mode:       Target normalization the artifact was fitted under.
        artifact:   ``RidgeModel`` or ``BoostedEnsemble``.
        metrics:    In-sample R²/MAE.
        trained_at: UTC timestamp of the fit.
    """

    model_config = ConfigDict(frozen=True)

    model_type: str
    mode: TrainingMode
    artifact: ModelArtifact
    metrics: TrainingMetrics
    trained_at: datetime

    @property
    def family(self) -> str:
        return self.artifact.family

    @property
    def feature_names(self) -> list[str]:
        return list(self.artifact.feature_names)

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, payload: str) -> "ModelRecord":
        return cls.model_validate_json(payload)
