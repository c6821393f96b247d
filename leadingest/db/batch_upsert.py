from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from psycopg2.extras import execute_values

from ..errors import IngestError
from ..records.registry import RecordKind, RecordSpec, get_spec
from ..records.transform import CanonicalRecord

"""Batched INSERT ... ON CONFLICT upserts through psycopg2.extras.execute_values.

Table and column identifiers come from the static record registry and are
quoted; every cell value is passed as a bound parameter.

Each batch of at most ``MAX_BATCH_SIZE`` records runs in its own transaction
(BEGIN / COMMIT issued on the cursor). A failing batch is rolled back and
raised as ``BatchExecutionFailure``; earlier batches stay committed.
"""

__all__ = [
    "MAX_BATCH_SIZE",
    "BatchExecutionFailure",
    "BatchMetrics",
    "UpsertResult",
    "BulkUpserter",
    "batch_upsert",
    "chunked",
    "quote_ident",
    "build_upsert_sql",
]

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 500

T = TypeVar("T")


class BatchExecutionFailure(IngestError):
    """A batch statement failed; the batch was rolled back, earlier ones were not."""

    def __init__(self, message: str, *, batch_index: int = -1, committed_batches: int = 0,
                 processed_records: int = 0) -> None:
        super().__init__(message)
        self.batch_index = batch_index
        self.committed_batches = committed_batches
        self.processed_records = processed_records


@dataclass(frozen=True)
class BatchMetrics:
    """Timing for one committed batch."""
    batch_index: int
    batch_size: int  # top-level records in this batch
    child_rows: int  # fan-out rows inserted with it
    elapsed_seconds: float
    start_time: float
    end_time: float


@dataclass(frozen=True)
class UpsertResult:
    processed_records: int
    batches: int
    child_rows: int = 0


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    if size <= 0:
        raise ValueError("batch size must be positive")
    for start in range(0, len(items), size):
        yield items[start:start + size]


def quote_ident(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def build_upsert_sql(
    table: str,
    columns: Sequence[str],
    conflict_columns: Sequence[str],
    update: bool = True,
) -> str:
    """Build the ``execute_values`` statement (``VALUES %s`` placeholder)."""
    cols_sql = ",".join(quote_ident(c) for c in columns)
    conflict_sql = ",".join(quote_ident(c) for c in conflict_columns)
    update_cols = [c for c in columns if c not in conflict_columns]
    sql = f"INSERT INTO {quote_ident(table)} ({cols_sql}) VALUES %s ON CONFLICT ({conflict_sql}) "
    if update and update_cols:
        sets = ",".join(f"{quote_ident(c)}=EXCLUDED.{quote_ident(c)}" for c in update_cols)
        sql += f"DO UPDATE SET {sets}"
    else:
        sql += "DO NOTHING"
    return sql


def batch_upsert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    conflict_columns: Sequence[str],
    update: bool = True,
    page_size: int = MAX_BATCH_SIZE,
) -> int:
    """Execute one upsert statement per ``page_size`` rows; returns rows sent.

    ``update=False`` makes the statement duplicate tolerant (``DO NOTHING``).
    Driver errors are left to the caller, which owns the transaction.
    """
    rows_list = list(rows)
    if not rows_list:
        return 0
    sql = build_upsert_sql(table, columns, conflict_columns, update=update)
    execute_values(cursor, sql, rows_list, page_size=page_size)
    return len(rows_list)


def _dedupe_last(rows: list[tuple[Any, ...]], key_idx: list[int]) -> list[tuple[Any, ...]]:
    # ON CONFLICT DO UPDATE cannot touch the same row twice in one statement
    latest: dict[tuple[Any, ...], tuple[Any, ...]] = {}
    for row in rows:
        key = tuple(row[i] for i in key_idx)
        latest.pop(key, None)
        latest[key] = row
    return list(latest.values())


class BulkUpserter:
    """Upserts canonical records for one record kind in bounded batches.

    ``cursor=None`` is dry-run mode: batches are planned and counted but no
    SQL is executed.
    """

    def __init__(
        self,
        cursor: Any,
        batch_size: int = MAX_BATCH_SIZE,
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> None:
        if batch_size <= 0 or batch_size > MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")
        self.cursor = cursor
        self.batch_size = batch_size
        self.metrics_callback = metrics_callback

    def _main_rows(self, spec: RecordSpec, batch: Sequence[CanonicalRecord]) -> list[tuple[Any, ...]]:
        names = spec.column_names
        rows = [tuple(rec.values.get(c) for c in names) for rec in batch]
        return _dedupe_last(rows, [names.index(c) for c in spec.conflict_columns])

    def _child_rows(self, spec: RecordSpec, batch: Sequence[CanonicalRecord]) -> list[tuple[str, str]]:
        if spec.child is None:
            return []
        pairs: list[tuple[str, str]] = []
        for rec in batch:
            parent = rec.values.get(spec.child.parent_key)
            if not parent:
                continue
            pairs.extend((parent, tag) for tag in rec.business_natures if tag)
        return pairs

    def _execute_batch(self, spec: RecordSpec, batch: Sequence[CanonicalRecord]) -> int:
        cur = self.cursor
        main_rows = self._main_rows(spec, batch)
        child_rows = self._child_rows(spec, batch)
        cur.execute("BEGIN")
        try:
            batch_upsert(
                cur,
                table=spec.table,
                columns=spec.column_names,
                rows=main_rows,
                conflict_columns=spec.conflict_columns,
                page_size=self.batch_size,
            )
            if spec.child is not None:
                for sub in chunked(child_rows, self.batch_size):
                    batch_upsert(
                        cur,
                        table=spec.child.table,
                        columns=spec.child.columns,
                        rows=sub,
                        conflict_columns=spec.child.columns,
                        update=False,
                        page_size=self.batch_size,
                    )
            cur.execute("COMMIT")
        except Exception:
            try:
                cur.execute("ROLLBACK")
            except Exception:  # pragma: no cover - connection already gone
                logger.warning("rollback failed for table=%s", spec.table, exc_info=True)
            raise
        return len(child_rows)

    def upsert(self, kind: str | RecordKind, records: Sequence[CanonicalRecord],
               on_batch: Callable[[int], None] | None = None) -> UpsertResult:
        """Upsert ``records`` batch by batch; returns the records processed.

        ``on_batch`` is called with each committed batch's record count.
        """
        spec = get_spec(kind)
        processed = 0
        committed = 0
        child_total = 0
        for index, batch in enumerate(chunked(records, self.batch_size)):
            start = time.time()
            if self.cursor is None:
                child_rows = len(self._child_rows(spec, batch))
            else:
                try:
                    child_rows = self._execute_batch(spec, batch)
                except Exception as e:
                    logger.error(
                        "batch %d (%d records) failed for table=%s: %s",
                        index, len(batch), spec.table, e,
                    )
                    raise BatchExecutionFailure(
                        f"batch {index + 1} failed for {spec.table}: {e}",
                        batch_index=index,
                        committed_batches=committed,
                        processed_records=processed,
                    ) from e
            end = time.time()
            processed += len(batch)
            committed += 1
            child_total += child_rows
            logger.debug(
                "table=%s batch=%d records=%d child_rows=%d elapsed=%.3fs",
                spec.table, index, len(batch), child_rows, end - start,
            )
            if self.metrics_callback is not None:
                self.metrics_callback(BatchMetrics(
                    batch_index=index,
                    batch_size=len(batch),
                    child_rows=child_rows,
                    elapsed_seconds=end - start,
                    start_time=start,
                    end_time=end,
                ))
            if on_batch is not None:
                on_batch(len(batch))
        return UpsertResult(processed_records=processed, batches=committed, child_rows=child_total)
