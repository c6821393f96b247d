from __future__ import annotations

import statistics
from dataclasses import dataclass, field

from ..records.validator import RowRejection

"""Result model for one processed upload plus batch timing statistics."""

__all__ = [
    "IngestResult",
    "BatchStatsAccumulator",
]


@dataclass(frozen=True)
class IngestResult:
    """Outcome of one upload.

    ``inserted_records`` counts validated rows sent to the database (updates
    of existing keys included), not newly created rows.
    """
    file_name: str
    kind: str
    total_records: int  # raw data rows read from the sheet
    inserted_records: int
    rejected_rows: list[RowRejection] = field(default_factory=list)
    batches: int = 0
    business_nature_rows: int = 0
    elapsed_seconds: float = 0.0
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0
    dry_run: bool = False

    @property
    def rejected_count(self) -> int:
        return len(self.rejected_rows)

    @property
    def throughput_rows_per_sec(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.inserted_records / self.elapsed_seconds

    def to_payload(self) -> dict[str, int]:
        return {
            "insertedRecords": self.inserted_records,
            "totalRecords": self.total_records,
        }


class BatchStatsAccumulator:
    """Collects per-batch elapsed times and summarizes them."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Return ``(total_batches, avg_batch_seconds, p95_batch_seconds)``."""
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)

        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method='inclusive'
            )[18]  # 19th of 20 cut points

        return (total_batches, avg_batch_seconds, p95_batch_seconds)
