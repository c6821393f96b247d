from __future__ import annotations

"""Common exception base for the ingestion pipeline.

Concrete errors live next to the code that raises them
(reader, registry, batch_upsert) and all derive from ``IngestError`` so that
the CLI can report any pipeline failure with a single ``except`` clause.
"""

__all__ = [
    "IngestError",
]


class IngestError(Exception):
    """Base class for errors reported back to the uploader."""
