"""
Yield Forecaster — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (train, predict, backup, ...).
  5. Report result to stdout; failures print ``[ERROR] ...`` and exit 1.

Install and run::

    pip install -e .
    yield-forecaster --help
    yield-forecaster init-db
    yield-forecaster template --output data/raw/training_template.csv
    yield-forecaster train recall --file data/raw/recall.xlsx
    yield-forecaster predict recall --file data/raw/new.xlsx --output data/outputs/recall.csv
    yield-forecaster summary recall
    yield-forecaster export-bundle --output data/outputs/model_result.json
    yield-forecaster publish
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

import typer

app = typer.Typer(
    name="yield-forecaster",
    help="Small-sample yield forecaster — ridge, boosted trees and a robust guardrail.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from yield_forecaster.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from yield_forecaster.utils.logging import configure_logging
    configure_logging(config.logging)


def _fail(message: str) -> typer.Exit:
    typer.echo(f"[ERROR] {message}", err=True)
    return typer.Exit(code=1)


def _error_message(exc: Exception) -> str:
    # KeyError.__str__ wraps the message in quotes.
    if isinstance(exc, KeyError) and exc.args:
        return str(exc.args[0])
    return str(exc)


def _check_model_type(config, model_type: str) -> None:
    try:
        config.models.get(model_type)
    except KeyError as exc:
        raise _fail(_error_message(exc))


@contextmanager
def _open_db(config, db_path: Optional[str] = None) -> Generator[sqlite3.Connection, None, None]:
    """Connection with the schema applied (idempotent)."""
    from yield_forecaster.db.connection import get_connection
    from yield_forecaster.db.schema import apply_schema

    with get_connection(
        db_path or config.database.db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)
        yield conn


def _echo_phase(event) -> None:
    from yield_forecaster.pipeline.progress import PHASE_ORDER

    typer.echo(
        f"  [{event.step}/{len(PHASE_ORDER)}] {event.phase.value:<16} {event.detail}"
    )


_CONFIG_OPTION = typer.Option(None, "--config", help="Path to TOML config file.")
_DB_OPTION = typer.Option(None, "--db-path", help="Override DB path from config.")


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Initialize the SQLite database and apply the schema.

    Safe to run multiple times — all DDL uses IF NOT EXISTS.
    """
    from yield_forecaster.db.schema import ALL_TABLE_NAMES

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")
    with _open_db(config, target_path):
        pass

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = _CONFIG_OPTION,
    show_full: bool = typer.Option(False, "--full", help="Print full config as JSON."),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:    {config.database.db_path}")
    typer.echo(f"  Ridge alpha:      {config.ridge.alpha}")
    typer.echo(
        f"  Boosting:         {config.boosting.n_estimators} trees, "
        f"lr={config.boosting.learning_rate}, depth={config.boosting.max_depth}"
    )
    typer.echo(
        f"  Guardrail:        {'on' if config.guardrail.enabled else 'off'} "
        f"[{config.guardrail.low_percent}%, {config.guardrail.high_percent}%]"
    )
    typer.echo(f"  Model types:      {', '.join(sorted(config.models.profiles))}")
    typer.echo(f"  Sync configured:  {config.sync.is_configured}")
    typer.echo(f"  Log level:        {config.logging.level}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        dumped = config.model_dump(exclude={"sync": {"token"}})
        typer.echo(json.dumps(dumped, indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("template")
def template(
    output: str = typer.Option(..., "--output", "-o", help="Template path (.csv or .xlsx)."),
    prediction: bool = typer.Option(
        False, "--prediction", help="Omit the yield_total column (prediction input)."
    ),
) -> None:
    """Write a header-only input template."""
    from yield_forecaster.ingestion.dataset_io import write_template

    try:
        path = write_template(Path(output), training=not prediction)
    except ValueError as exc:
        raise _fail(str(exc))
    typer.echo(f"[OK] Template written: {path}")


@app.command("train")
def train(
    model_type: str = typer.Argument(..., help="Model type slug, e.g. 'recall'."),
    data_file: str = typer.Option(..., "--file", "-f", help="Training file (.csv/.xlsx/.parquet)."),
    replace: bool = typer.Option(
        False, "--replace", help="Discard stored history instead of appending to it."
    ),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Train (or retrain) a model type and persist the artifact.

    New records are appended to the stored dataset for the model type unless
    --replace is given; the model is always refit on the full dataset.
    """
    from yield_forecaster.exceptions import YieldForecasterError
    from yield_forecaster.ingestion.dataset_io import load_records
    from yield_forecaster.pipeline.progress import PhaseSignal
    from yield_forecaster.pipeline.train import train_and_persist

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    _check_model_type(config, model_type)

    signal = PhaseSignal()
    signal.subscribe(_echo_phase)

    typer.echo(f"Training '{model_type}' from: {data_file}")
    try:
        records = load_records(Path(data_file), training=True)
        with _open_db(config, db_path) as conn:
            record = train_and_persist(
                conn, records, model_type, config, signal, merge_history=not replace
            )
    except (YieldForecasterError, FileNotFoundError, ValueError) as exc:
        raise _fail(f"Training failed: {exc}")

    typer.echo(
        f"  Samples: {record.metrics.sample_size}  "
        f"R2: {record.metrics.r2:.4f}  MAE: {record.metrics.mae:.4f}"
    )
    typer.echo("[OK] Model trained.")


@app.command("predict")
def predict(
    model_type: str = typer.Argument(..., help="Model type slug."),
    data_file: str = typer.Option(..., "--file", "-f", help="Input file (.csv/.xlsx/.parquet)."),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Write predictions here (.csv/.xlsx/.parquet)."
    ),
    no_guardrail: bool = typer.Option(False, "--no-guardrail", help="Disable clamping."),
    low_percent: Optional[float] = typer.Option(None, "--low", help="Guardrail lower %."),
    high_percent: Optional[float] = typer.Option(None, "--high", help="Guardrail upper %."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Forecast yield for every row of an input file."""
    from pydantic import ValidationError

    from yield_forecaster.config import GuardrailConfig
    from yield_forecaster.exceptions import YieldForecasterError
    from yield_forecaster.ingestion.dataset_io import load_records, write_rows
    from yield_forecaster.pipeline.predict import load_model, predict_records

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    _check_model_type(config, model_type)

    try:
        guardrail = GuardrailConfig(
            enabled=config.guardrail.enabled and not no_guardrail,
            low_percent=config.guardrail.low_percent if low_percent is None else low_percent,
            high_percent=config.guardrail.high_percent if high_percent is None else high_percent,
        )
    except ValidationError as exc:
        raise _fail(f"Invalid guardrail settings: {exc}")

    try:
        records = load_records(Path(data_file), training=False)
        with _open_db(config, db_path) as conn:
            model_record = load_model(conn, model_type)
        predictions = predict_records(
            model_record, records, guardrail, config.forecast.confidence_pct
        )
    except (YieldForecasterError, FileNotFoundError, ValueError) as exc:
        raise _fail(f"Prediction failed: {exc}")

    rows = [p.to_row() for p in predictions]
    if output:
        write_rows(Path(output), rows)
        typer.echo(f"  Predictions written: {output}")
    else:
        for prediction, row in zip(predictions, rows):
            flag = " (clipped)" if prediction.clipped else ""
            typer.echo(
                f"  days={row['collection_days']:g}  predicted={row['predicted_yield']}  "
                f"[{row['lower_bound']}, {row['upper_bound']}]{flag}"
            )
    n_clipped = sum(p.clipped for p in predictions)
    typer.echo(f"[OK] {len(predictions)} prediction(s), {n_clipped} clipped.")


@app.command("metrics")
def metrics(
    model_type: Optional[str] = typer.Argument(None, help="Model type (default: all)."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Show stored in-sample R² / MAE per model type."""
    from yield_forecaster.db.repositories.model_repo import ModelArtifactRepository

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    if model_type is not None:
        _check_model_type(config, model_type)
    types = [model_type] if model_type else sorted(config.models.profiles)

    with _open_db(config, db_path) as conn:
        repo = ModelArtifactRepository(conn)
        typer.echo(f"  {'type':<10} {'samples':>8} {'R2':>8} {'MAE':>12}")
        for slug in types:
            m = repo.get_metrics(slug)
            if m is None:
                typer.echo(f"  {slug:<10} {'-':>8} {'-':>8} {'-':>12}  (not trained)")
            else:
                typer.echo(f"  {slug:<10} {m.sample_size:>8} {m.r2:>8.4f} {m.mae:>12.4f}")


@app.command("summary")
def summary(
    model_type: str = typer.Argument(..., help="Model type slug."),
    as_json: bool = typer.Option(False, "--json", help="Print the summary as JSON."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Describe the stored model for a type."""
    from yield_forecaster.exceptions import ModelNotTrainedError
    from yield_forecaster.pipeline.predict import load_model
    from yield_forecaster.reporting.summary import build_model_summary, format_model_summary

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    _check_model_type(config, model_type)

    try:
        with _open_db(config, db_path) as conn:
            record = load_model(conn, model_type)
    except ModelNotTrainedError as exc:
        raise _fail(str(exc))

    result = build_model_summary(record, config.models.get(model_type))
    if as_json:
        typer.echo(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        typer.echo(format_model_summary(result))


@app.command("export-data")
def export_data(
    model_type: str = typer.Argument(..., help="Model type slug."),
    output: str = typer.Option(..., "--output", "-o", help="Output file (.csv/.xlsx/.parquet)."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Export the accumulated training data for a model type."""
    from yield_forecaster.db.repositories.record_repo import TrainingRecordRepository
    from yield_forecaster.ingestion.dataset_io import required_columns, write_rows

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    _check_model_type(config, model_type)

    with _open_db(config, db_path) as conn:
        records = TrainingRecordRepository(conn).get_all(model_type)
    if not records:
        raise _fail(f"No stored training data for '{model_type}'.")

    try:
        n = write_rows(Path(output), [r.to_row() for r in records], required_columns(True))
    except ValueError as exc:
        raise _fail(str(exc))
    typer.echo(f"[OK] Exported {n} record(s) to {output}")


@app.command("clear")
def clear(
    model_type: str = typer.Argument(..., help="Model type slug."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Delete the stored artifact and training data for a model type."""
    from yield_forecaster.db.repositories.model_repo import ModelArtifactRepository
    from yield_forecaster.db.repositories.record_repo import TrainingRecordRepository

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    _check_model_type(config, model_type)

    if not yes:
        typer.confirm(f"Delete the '{model_type}' model and all its training data?", abort=True)

    with _open_db(config, db_path) as conn:
        n_records = TrainingRecordRepository(conn).delete(model_type)
        had_model = ModelArtifactRepository(conn).delete(model_type)

    typer.echo(f"  Removed {n_records} record(s); model {'removed' if had_model else 'not present'}.")
    typer.echo(f"[OK] '{model_type}' cleared.")


@app.command("export-bundle")
def export_bundle_cmd(
    output: str = typer.Option(..., "--output", "-o", help="Bundle JSON path."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Write every model type's artifact and data to one JSON bundle."""
    from yield_forecaster.pipeline.bundle import export_bundle, write_bundle

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config, db_path) as conn:
        bundle = export_bundle(conn, sorted(config.models.profiles))
    write_bundle(Path(output), bundle)
    typer.echo(f"[OK] Bundle with {len(bundle)} model type(s) written to {output}")


def _restore_all(config, bundle: dict, db_path: Optional[str], model_types: list[str]) -> None:
    from yield_forecaster.exceptions import YieldForecasterError
    from yield_forecaster.pipeline.bundle import restore_bundle
    from yield_forecaster.pipeline.progress import PhaseSignal

    signal = PhaseSignal()
    signal.subscribe(_echo_phase)
    try:
        with _open_db(config, db_path) as conn:
            for slug in model_types:
                restored = restore_bundle(conn, bundle, slug, config, signal)
                status = "restored" if restored is not None else "nothing to restore"
                typer.echo(f"  {slug:<10} {status}")
    except (YieldForecasterError, ValueError) as exc:
        raise _fail(f"Restore failed: {exc}")


@app.command("restore-bundle")
def restore_bundle_cmd(
    bundle_file: str = typer.Option(..., "--file", "-f", help="Bundle JSON path."),
    model_type: Optional[str] = typer.Option(
        None, "--model-type", help="Restore only this type (default: all configured)."
    ),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Restore artifacts and data from a JSON bundle (retraining when only data is present)."""
    from yield_forecaster.pipeline.bundle import read_bundle

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    if model_type is not None:
        _check_model_type(config, model_type)

    try:
        bundle = read_bundle(Path(bundle_file))
    except (FileNotFoundError, ValueError) as exc:
        raise _fail(str(exc))

    types = [model_type] if model_type else sorted(config.models.profiles)
    _restore_all(config, bundle, db_path, types)
    typer.echo("[OK] Restore complete.")


@app.command("publish")
def publish(
    message: str = typer.Option("Update model bundle", "--message", "-m", help="Commit message."),
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Publish the current bundle to the configured GitHub repository."""
    from yield_forecaster.exceptions import SyncError
    from yield_forecaster.pipeline.bundle import export_bundle
    from yield_forecaster.sync.github_client import GitHubSyncClient

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config, db_path) as conn:
        bundle = export_bundle(conn, sorted(config.models.profiles))

    try:
        with GitHubSyncClient(config.sync) as client:
            sha = client.publish(bundle, message=message)
    except SyncError as exc:
        raise _fail(str(exc))
    typer.echo(f"[OK] Published {len(bundle)} model type(s) (sha {sha[:7] or 'unknown'}).")


@app.command("pull")
def pull(
    db_path: Optional[str] = _DB_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Fetch the bundle from GitHub and restore every configured model type."""
    from yield_forecaster.exceptions import SyncError
    from yield_forecaster.sync.github_client import GitHubSyncClient

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        with GitHubSyncClient(config.sync) as client:
            bundle = client.fetch()
    except SyncError as exc:
        raise _fail(str(exc))

    _restore_all(config, bundle, db_path, sorted(config.models.profiles))
    typer.echo("[OK] Pull complete.")


if __name__ == "__main__":
    app()
