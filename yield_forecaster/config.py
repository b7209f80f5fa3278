"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``YIELD_FORECASTER_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

All pipeline functions and CLI commands receive an ``AppConfig`` instance —
never raw dicts or individual env var lookups scattered through the codebase.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

ModelFamily = Literal["ridge", "boosted"]
TrainingMode = Literal["daily_intensity", "total"]

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/yield_forecaster.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class DataConfig(BaseModel):
    """Filesystem paths for input spreadsheets and exported results."""

    model_config = ConfigDict(frozen=True)

    raw_dir: str = "data/raw"
    output_dir: str = "data/outputs"


class RidgeConfig(BaseModel):
    """Closed-form ridge regression settings."""

    model_config = ConfigDict(frozen=True)

    alpha: float = 1.0

    @field_validator("alpha")
    @classmethod
    def validate_alpha(cls, v: float) -> float:
        if v < 0.0:
            raise ValueError(f"alpha must be >= 0, got {v}.")
        return v


class BoostingConfig(BaseModel):
    """Gradient-boosted regression tree settings.

    ``min_split_samples`` is the node size at or below which a tree stops
    splitting and emits a leaf.
    """

    model_config = ConfigDict(frozen=True)

    n_estimators: int = 30
    learning_rate: float = 0.1
    max_depth: int = 4
    min_split_samples: int = 5

    @field_validator("n_estimators", "max_depth")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be >= 1, got {v}.")
        return v

    @field_validator("learning_rate")
    @classmethod
    def validate_learning_rate(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError(f"learning_rate must be in (0.0, 1.0], got {v}.")
        return v

    @field_validator("min_split_samples")
    @classmethod
    def validate_min_split(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"min_split_samples must be >= 0, got {v}.")
        return v


class GuardrailConfig(BaseModel):
    """Clamp band around the robust baseline, in percent of the baseline."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    low_percent: float = 30.0
    high_percent: float = 170.0

    @model_validator(mode="after")
    def validate_band(self) -> "GuardrailConfig":
        if self.low_percent < 0.0:
            raise ValueError(f"low_percent must be >= 0, got {self.low_percent}.")
        if self.high_percent < self.low_percent:
            raise ValueError(
                f"high_percent ({self.high_percent}) must be >= "
                f"low_percent ({self.low_percent})."
            )
        return self


class ForecastConfig(BaseModel):
    """Prediction interval settings."""

    model_config = ConfigDict(frozen=True)

    confidence_pct: float = 0.80

    @field_validator("confidence_pct")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 < v < 1.0:
            raise ValueError(f"confidence_pct must be in (0.0, 1.0), got {v}.")
        return v


class ProfileConfig(BaseModel):
    """One named model type: which family is fitted and how the target is read.

    ``mode="daily_intensity"`` trains on yield ÷ collection days and scales
    predictions back up by the input's days; ``mode="total"`` trains on the
    raw yield. ``feature_names=None`` selects the family's default features.
    """

    model_config = ConfigDict(frozen=True)

    display_name: str
    family: ModelFamily
    mode: TrainingMode = "total"
    feature_names: Optional[list[str]] = None

    @field_validator("feature_names")
    @classmethod
    def validate_features(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return v
        from yield_forecaster.features.schema import FEATURE_GETTERS

        unknown = [name for name in v if name not in FEATURE_GETTERS]
        if unknown:
            raise ValueError(
                f"Unknown feature(s) {unknown}. Must be from {sorted(FEATURE_GETTERS)}."
            )
        if not v:
            raise ValueError("feature_names must not be empty.")
        return v


def _default_profiles() -> dict[str, ProfileConfig]:
    return {
        "online": ProfileConfig(
            display_name="Mobile online (boosted trees)",
            family="boosted",
            mode="total",
        ),
        "recall": ProfileConfig(
            display_name="Mobile recall (boosted trees, daily intensity)",
            family="boosted",
            mode="daily_intensity",
        ),
        "telecom": ProfileConfig(
            display_name="Telecom online (ridge)",
            family="ridge",
            mode="total",
        ),
    }


class ModelsConfig(BaseModel):
    """Registry of model types keyed by slug (e.g. ``"recall"``)."""

    model_config = ConfigDict(frozen=True)

    profiles: dict[str, ProfileConfig] = Field(default_factory=_default_profiles)

    def get(self, model_type: str) -> ProfileConfig:
        """Return the profile for ``model_type``.

        Raises:
            KeyError: If no profile is registered under that slug.
        """
        try:
            return self.profiles[model_type]
        except KeyError:
            raise KeyError(
                f"Unknown model type '{model_type}'. "
                f"Configured: {sorted(self.profiles)}."
            ) from None


class SyncConfig(BaseModel):
    """Remote backup target (a JSON file in a GitHub repository)."""

    model_config = ConfigDict(frozen=True)

    api_url: str = "https://api.github.com"
    owner: str = ""
    repo: str = ""
    path: str = "public/data/model_result.json"
    branch: str = "main"
    token: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.owner and self.repo and self.token)


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/yield_forecaster.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env. ``AppConfig()``
    with no arguments yields the built-in defaults (handy in tests).
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    data: DataConfig = DataConfig()
    ridge: RidgeConfig = RidgeConfig()
    boosting: BoostingConfig = BoostingConfig()
    guardrail: GuardrailConfig = GuardrailConfig()
    forecast: ForecastConfig = ForecastConfig()
    models: ModelsConfig = ModelsConfig()
    sync: SyncConfig = SyncConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    load_dotenv(dotenv_path=root / ".env", override=False)

    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    raw = _apply_env_overrides(raw)

    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply YIELD_FORECASTER_* env vars to the raw config dict.

    Supported overrides:
      YIELD_FORECASTER_DB_PATH       → raw["database"]["db_path"]
      YIELD_FORECASTER_LOG_LEVEL     → raw["logging"]["level"]
      YIELD_FORECASTER_DEBUG         → raw["debug"]
      YIELD_FORECASTER_GITHUB_TOKEN  → raw["sync"]["token"]
    """
    if db_path := os.environ.get("YIELD_FORECASTER_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get("YIELD_FORECASTER_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("YIELD_FORECASTER_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    if token := os.environ.get("YIELD_FORECASTER_GITHUB_TOKEN"):
        raw.setdefault("sync", {})["token"] = token

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        data=DataConfig(**raw.get("data", {})),
        ridge=RidgeConfig(**raw.get("ridge", {})),
        boosting=BoostingConfig(**raw.get("boosting", {})),
        guardrail=GuardrailConfig(**raw.get("guardrail", {})),
        forecast=ForecastConfig(**raw.get("forecast", {})),
        models=ModelsConfig(**raw.get("models", {})),
        sync=SyncConfig(**raw.get("sync", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
