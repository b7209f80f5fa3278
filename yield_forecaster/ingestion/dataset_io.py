"""
Dataset file I/O for training and prediction inputs.

Supported formats (chosen by file suffix):
  .csv             csv.DictReader / DictWriter, UTF-8 (a leading BOM is
                   tolerated on read and written on export so Excel opens
                   the file with the right encoding).
  .parquet         pyarrow.
  .xlsx            pandas + openpyxl (first sheet only).

Headers are normalized through ``COLUMN_ALIASES`` on read, so files exported
from the original spreadsheets with Chinese titles (采集天数, 笔记数, 点赞数,
收藏数, 评论数, 采集量) load exactly like files with canonical headers.

Required columns:
  prediction input → collection_days, notes, likes, favorites, comments
  training input   → the above plus yield_total

Only the first row is checked for columns, and an empty counter cell there
counts as missing. Cells in later rows are coerced leniently (missing or
non-numeric → 0) when rows become ``YieldRecord``s.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from yield_forecaster.exceptions import ColumnValidationError, EmptyDatasetError
from yield_forecaster.models.record import (
    INPUT_COLUMNS,
    TARGET_COL,
    YieldRecord,
    canonical_column,
)

logger = logging.getLogger(__name__)

CSV_SUFFIXES = frozenset({".csv"})
PARQUET_SUFFIXES = frozenset({".parquet"})
EXCEL_SUFFIXES = frozenset({".xlsx"})
SUPPORTED_SUFFIXES = CSV_SUFFIXES | PARQUET_SUFFIXES | EXCEL_SUFFIXES


def required_columns(training: bool) -> list[str]:
    return [*INPUT_COLUMNS, TARGET_COL] if training else list(INPUT_COLUMNS)


def _suffix(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ValueError(
            f"Unsupported file type '{path.suffix}' for {path.name}. "
            f"Expected one of {sorted(SUPPORTED_SUFFIXES)}."
        )
    return suffix


def _normalize_row(row: dict[Any, Any]) -> dict[str, Any]:
    return {canonical_column(k): v for k, v in row.items() if k is not None}


# ── Readers ────────────────────────────────────────────────────────────────────

def _read_csv(path: Path) -> list[dict[str, Any]]:
    with open(path, encoding="utf-8-sig", newline="") as f:
        return list(csv.DictReader(f))


def _read_parquet(path: Path) -> list[dict[str, Any]]:
    return pq.read_table(str(path)).to_pylist()


def _read_excel(path: Path) -> list[dict[str, Any]]:
    df = pd.read_excel(path)
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")


def read_rows(path: Path) -> list[dict[str, Any]]:
    """Read every data row of ``path`` as a dict keyed by canonical headers.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError:        If the suffix is not supported.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset file not found: {path}")

    suffix = _suffix(path)
    if suffix in CSV_SUFFIXES:
        raw = _read_csv(path)
    elif suffix in PARQUET_SUFFIXES:
        raw = _read_parquet(path)
    else:
        raw = _read_excel(path)

    rows = [_normalize_row(r) for r in raw]
    logger.info("Read %d rows from %s", len(rows), path.name)
    return rows


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_columns(row: dict[str, Any], training: bool) -> None:
    """Check that ``row`` (canonical headers) carries every required column.

    An input counter counts as missing when its header is absent or its cell
    is empty (``None`` or whitespace). The target only has to be present.

    Raises:
        ColumnValidationError: Listing the missing columns in template order.
    """
    missing = [col for col in INPUT_COLUMNS if _is_blank(row.get(col))]
    if training and row.get(TARGET_COL) is None:
        missing.append(TARGET_COL)
    if missing:
        raise ColumnValidationError(missing)


def load_records(path: Path, training: bool) -> list[YieldRecord]:
    """Read, validate and coerce a dataset file into ``YieldRecord``s.

    Raises:
        EmptyDatasetError:     The file has no data rows.
        ColumnValidationError: The first row lacks a required column.
    """
    rows = read_rows(path)
    if not rows:
        raise EmptyDatasetError(f"No data rows in {Path(path).name}.")
    validate_columns(rows[0], training)
    return [YieldRecord.from_row(r) for r in rows]


# ── Writers ────────────────────────────────────────────────────────────────────

def _columns_of(rows: list[dict[str, Any]]) -> list[str]:
    columns: list[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    return columns


def write_rows(path: Path, rows: list[dict[str, Any]], columns: list[str] | None = None) -> int:
    """Write ``rows`` to ``path`` in the format implied by its suffix.

    Args:
        path:    Output file; parent directories are created.
        rows:    Flat dicts (missing keys are written as empty cells).
        columns: Explicit column order; defaults to first-seen key order.

    Returns:
        Number of data rows written.
    """
    path = Path(path)
    suffix = _suffix(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    columns = list(columns) if columns is not None else _columns_of(rows)

    if suffix in CSV_SUFFIXES:
        with open(path, "w", encoding="utf-8-sig", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
            writer.writeheader()
            writer.writerows(rows)
    elif suffix in PARQUET_SUFFIXES:
        table = pa.table({col: [r.get(col) for r in rows] for col in columns})
        pq.write_table(table, str(path), compression="snappy")
    else:
        pd.DataFrame(rows, columns=columns).to_excel(path, index=False)

    logger.info("Wrote %d rows to %s", len(rows), path.name)
    return len(rows)


def write_template(path: Path, training: bool = True) -> Path:
    """Write a header-only template with the required columns."""
    path = Path(path)
    if _suffix(path) in PARQUET_SUFFIXES:
        raise ValueError("Templates are written as .csv or .xlsx, not Parquet.")
    write_rows(path, [], columns=required_columns(training))
    return path
