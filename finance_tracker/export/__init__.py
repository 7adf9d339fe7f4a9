"""CSV export of ledger collections."""

from finance_tracker.export.csv_export import EXPORT_HEADERS, CsvExporter, export_filename

__all__ = ["EXPORT_HEADERS", "CsvExporter", "export_filename"]
