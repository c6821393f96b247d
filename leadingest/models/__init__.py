"""Result and error-log models."""

from .error_record import ErrorRecord
from .ingest_result import BatchStatsAccumulator, IngestResult

__all__ = [
    "BatchStatsAccumulator",
    "ErrorRecord",
    "IngestResult",
]
