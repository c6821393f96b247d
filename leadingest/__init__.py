"""Spreadsheet lead ingestion (MCA / IEC / GST) into PostgreSQL."""

__version__ = "0.1.0"
