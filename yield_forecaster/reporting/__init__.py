"""Reporting layer: model summaries and plain-text formatters for the CLI."""
