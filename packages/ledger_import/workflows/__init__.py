"""High-level flows composing the ingest, wizard, and commit stages."""

from .import_flow import ImportReport, InspectReport, import_csv, inspect_csv

__all__ = ["ImportReport", "InspectReport", "import_csv", "inspect_csv"]
