from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

``row`` is the 1-based data row of the uploaded sheet (header row excluded);
-1 marks batch- or file-level errors where no single row is to blame.
"""

__all__ = [
    "ErrorRecord",
    "ROW_MISSING_MANDATORY_FIELDS",
    "BATCH_EXECUTION_FAILURE",
]

ROW_MISSING_MANDATORY_FIELDS = "ROW_MISSING_MANDATORY_FIELDS"
BATCH_EXECUTION_FAILURE = "BATCH_EXECUTION_FAILURE"


@dataclass(frozen=True)
class ErrorRecord:
    timestamp: str  # ISO8601 UTC with Z suffix
    file: str
    kind: str
    row: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, kind: str, row: int, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            kind=kind,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
