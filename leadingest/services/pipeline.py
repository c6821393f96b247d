from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

from ..db.batch_upsert import MAX_BATCH_SIZE, BatchExecutionFailure, BatchMetrics, BulkUpserter
from ..excel.reader import read_upload
from ..logging.error_log import ErrorLogBuffer
from ..models.ingest_result import BatchStatsAccumulator, IngestResult
from ..records.registry import resolve_kind, transform_rows
from ..records.validator import partition_rows
from .progress import BatchProgress

logger = logging.getLogger(__name__)

"""Upload ingestion pipeline.

read -> validate -> transform -> batched upsert, for a single uploaded file.

Kind and format problems are raised before anything is written. A failing
batch raises ``BatchExecutionFailure`` after earlier batches were committed;
the upload is then partially applied.
"""

__all__ = [
    "ingest_upload",
]


def ingest_upload(
    content: bytes,
    filename: str,
    kind: str,
    cursor: Any = None,
    *,
    batch_size: int = MAX_BATCH_SIZE,
    null_sentinels: Iterable[str] | None = None,
    max_upload_bytes: int | None = None,
    error_log: ErrorLogBuffer | None = None,
    show_progress: bool = True,
) -> IngestResult:
    """Ingest one uploaded spreadsheet of ``kind`` records.

    Args:
        content: raw upload bytes
        filename: original filename, used to pick the container format
        kind: ``mca`` | ``iec`` | ``gst``
        cursor: psycopg2 cursor on an autocommit connection (None = dry run)
        batch_size: records per upsert statement, at most 500
        null_sentinels: cell strings treated as empty (e.g. ``NA``)
        max_upload_bytes: reject larger uploads before decoding
        error_log: receives one record per rejected row / failed batch

    Raises:
        UnknownRecordKind, UploadTooLarge, UnsupportedFormat: nothing written
        BatchExecutionFailure: some batches may already be committed
    """
    record_kind = resolve_kind(kind)
    started = time.perf_counter()

    sheet = read_upload(content, filename, null_sentinels=null_sentinels, max_bytes=max_upload_bytes)
    total = len(sheet.rows)
    logger.info("file=%s kind=%s rows=%d columns=%d", filename, record_kind.value, total, len(sheet.columns))

    accepted, rejected = partition_rows(record_kind, sheet.rows)
    if rejected:
        logger.warning(
            "file=%s kind=%s dropped %d/%d rows missing mandatory fields",
            filename, record_kind.value, len(rejected), total,
        )
        if error_log is not None:
            error_log.reject_rows(filename, record_kind.value, rejected)

    records = transform_rows(record_kind, accepted)

    stats = BatchStatsAccumulator()
    description = f"{record_kind.value} upsert"
    with BatchProgress(len(records), description=description, enabled=show_progress) as progress:

        def _on_metrics(m: BatchMetrics) -> None:
            stats.add_batch_time(m.elapsed_seconds)
            progress.set_postfix(batch=m.batch_index + 1, natures=m.child_rows)

        upserter = BulkUpserter(cursor, batch_size=batch_size, metrics_callback=_on_metrics)
        try:
            outcome = upserter.upsert(record_kind, records, on_batch=progress.advance)
        except BatchExecutionFailure as e:
            if error_log is not None:
                error_log.batch_failure(filename, record_kind.value, e)
            raise

    batches, avg_batch, p95_batch = stats.get_stats()
    return IngestResult(
        file_name=filename,
        kind=record_kind.value,
        total_records=total,
        inserted_records=outcome.processed_records,
        rejected_rows=rejected,
        batches=batches,
        business_nature_rows=outcome.child_rows,
        elapsed_seconds=time.perf_counter() - started,
        avg_batch_seconds=avg_batch,
        p95_batch_seconds=p95_batch,
        dry_run=cursor is None,
    )
