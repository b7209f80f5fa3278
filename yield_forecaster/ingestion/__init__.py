"""Ingestion layer: spreadsheet/CSV/Parquet readers and writers for yield records."""
