from __future__ import annotations

import json
import re

from leadingest.db.batch_upsert import BatchExecutionFailure
from leadingest.logging.error_log import ErrorLogBuffer
from leadingest.models.error_record import BATCH_EXECUTION_FAILURE, ROW_MISSING_MANDATORY_FIELDS, ErrorRecord
from leadingest.records.validator import RowRejection


def test_record_json_line_contract():
    rec = ErrorRecord.create(file="gst.xlsx", kind="gst", row=3,
                             error_type=ROW_MISSING_MANDATORY_FIELDS, message="missing: GSTIN")
    data = json.loads(rec.to_json_line())
    assert set(data) == {"timestamp", "file", "kind", "row", "error_type", "message"}
    assert data["timestamp"].endswith("Z")
    assert data["row"] == 3


def test_empty_buffer_writes_nothing(tmp_path):
    buf = ErrorLogBuffer(tmp_path / "logs")
    assert buf.flush() is None
    assert not (tmp_path / "logs").exists()


def test_flush_appends_and_clears(tmp_path):
    buf = ErrorLogBuffer(tmp_path / "logs")
    for row in (1, 4):
        buf.append(ErrorRecord.create("mca.csv", "mca", row, ROW_MISSING_MANDATORY_FIELDS, "missing: DIN"))
    path = buf.flush()
    assert path is not None and re.fullmatch(r"errors-\d{8}-\d{6}\.log", path.name)
    assert [json.loads(l)["row"] for l in path.read_text(encoding="utf-8").splitlines()] == [1, 4]
    assert len(buf) == 0

    buf.append(ErrorRecord.create("mca.csv", "mca", -1, "BATCH_EXECUTION_FAILURE", "boom"))
    assert buf.flush() == path
    assert len(path.read_text(encoding="utf-8").splitlines()) == 3


def test_reject_rows_and_batch_failure(tmp_path):
    buf = ErrorLogBuffer(tmp_path / "logs")
    added = buf.reject_rows("mca.csv", "mca", [RowRejection(2, ("CIN",)), RowRejection(5, ("CIN", "DIN"))])
    assert added == 2
    buf.batch_failure("mca.csv", "mca", BatchExecutionFailure(
        "batch 2 failed for mca_new_leads: boom", batch_index=1, committed_batches=1, processed_records=500,
    ))

    rows = [(r.row, r.error_type, r.message) for r in buf.records]
    assert rows[0] == (2, ROW_MISSING_MANDATORY_FIELDS, "missing: CIN")
    assert rows[1] == (5, ROW_MISSING_MANDATORY_FIELDS, "missing: CIN, DIN")
    assert rows[2][0] == -1 and rows[2][1] == BATCH_EXECUTION_FAILURE
    assert "committed_batches=1 processed_records=500" in rows[2][2]
    assert buf.counts_by_type() == {ROW_MISSING_MANDATORY_FIELDS: 2, BATCH_EXECUTION_FAILURE: 1}
