from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from ..models.error_record import BATCH_EXECUTION_FAILURE, ROW_MISSING_MANDATORY_FIELDS, ErrorRecord

if TYPE_CHECKING:
    from ..db.batch_upsert import BatchExecutionFailure
    from ..records.validator import RowRejection

"""Per-upload error log.

Rows dropped by validation and batches that failed to commit are buffered
while an upload runs, then written once as JSON Lines to
``<logs_dir>/errors-YYYYMMDD-HHMMSS.log`` (UTC). Nothing is created on disk
when the upload was clean.
"""

__all__ = [
    "ErrorLogBuffer",
]

TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """Buffers ``ErrorRecord``s for one CLI run; ``flush`` appends them to disk."""

    def __init__(self, logs_dir: Path | str = "./logs") -> None:
        self.logs_dir = Path(logs_dir)
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        # fixed on first use so repeated flushes append to one file
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self.logs_dir / f"errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def reject_rows(self, file: str, kind: str, rejections: Iterable[RowRejection]) -> int:
        """Record one entry per dropped row; returns how many were added."""
        added = 0
        for r in rejections:
            self.append(ErrorRecord.create(
                file=file,
                kind=kind,
                row=r.row_number,
                error_type=ROW_MISSING_MANDATORY_FIELDS,
                message="missing: " + ", ".join(r.missing_fields),
            ))
            added += 1
        return added

    def batch_failure(self, file: str, kind: str, error: BatchExecutionFailure) -> None:
        self.append(ErrorRecord.create(
            file=file,
            kind=kind,
            row=-1,
            error_type=BATCH_EXECUTION_FAILURE,
            message=f"{error} (committed_batches={error.committed_batches} "
                    f"processed_records={error.processed_records})",
        ))

    def counts_by_type(self) -> dict[str, int]:
        return dict(Counter(r.error_type for r in self._records))

    def flush(self) -> Path | None:
        """Write and clear buffered records; returns the file path, or None if empty."""
        if not self._records:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            f.writelines(r.to_json_line() + "\n" for r in self._records)
        self._records.clear()
        return fp
