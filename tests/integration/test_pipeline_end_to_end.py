from __future__ import annotations

import pytest

from leadingest.db.batch_upsert import BatchExecutionFailure
from leadingest.excel.reader import UnsupportedFormat
from leadingest.logging.error_log import ErrorLogBuffer
from leadingest.records.registry import UnknownRecordKind
from leadingest.services.pipeline import ingest_upload

GSTIN = "29AAAAA0000A1Z5"


def _gst_upload(xlsx_bytes) -> bytes:
    return xlsx_bytes([
        {
            "GSTIN": GSTIN,
            "Legal Name": "Acme Traders",
            "Registration Date": "01/07/2017",
            "Business Nature": "['Retail Business','Wholesale Business']",
        },
        {
            "GSTIN": "",
            "Legal Name": "No Key Pvt Ltd",
            "Registration Date": None,
            "Business Nature": "Retail Business",
        },
    ])


def test_gst_upload_with_missing_key(fake_store, xlsx_bytes, tmp_path):
    error_log = ErrorLogBuffer(tmp_path / "logs")
    result = ingest_upload(_gst_upload(xlsx_bytes), "gst.xlsx", "gst", cursor=fake_store, error_log=error_log)

    assert result.to_payload() == {"insertedRecords": 1, "totalRecords": 2}
    assert [r.row_number for r in result.rejected_rows] == [2]
    assert result.batches == 1
    assert result.business_nature_rows == 2

    [basic] = fake_store.rows("gst_basics")
    assert basic["gstin"] == GSTIN
    assert basic["legal_name"] == "Acme Traders"
    assert basic["registration_date"] == "2017-01-07"  # month-first slash parse
    tags = sorted((r["gstin"], r["business_nature"]) for r in fake_store.rows("gst_business_natures"))
    assert tags == [(GSTIN, "Retail Business"), (GSTIN, "Wholesale Business")]

    [rec] = error_log.records
    assert rec.row == 2 and rec.error_type == "ROW_MISSING_MANDATORY_FIELDS"
    assert "GSTIN" in rec.message


def test_reupload_is_idempotent(fake_store, xlsx_bytes):
    content = _gst_upload(xlsx_bytes)
    first = ingest_upload(content, "gst.xlsx", "gst", cursor=fake_store)
    second = ingest_upload(content, "gst.xlsx", "gst", cursor=fake_store)
    assert first.inserted_records == second.inserted_records == 1
    assert len(fake_store.rows("gst_basics")) == 1
    assert len(fake_store.rows("gst_business_natures")) == 2


def test_conflict_overwrites_non_key_columns(fake_store, xlsx_bytes):
    ingest_upload(xlsx_bytes([{"IEC": "0512345678", "FIRM NAME": "Old Name", "STATUS": "Active"}]),
                  "iec.xlsx", "iec", cursor=fake_store)
    ingest_upload(xlsx_bytes([{"IEC": "0512345678", "FIRM NAME": "New Name"}]),
                  "iec.xlsx", "iec", cursor=fake_store)
    [row] = fake_store.rows("iec_leads")
    assert row["firm_name"] == "New Name"
    assert row["status"] is None  # last write wins, including nulls


def test_natures_accumulate_across_uploads(fake_store, xlsx_bytes):
    ingest_upload(xlsx_bytes([{"GSTIN": GSTIN, "Business Nature": "Retail Business"}]),
                  "a.xlsx", "gst", cursor=fake_store)
    ingest_upload(xlsx_bytes([{"GSTIN": GSTIN, "Business Nature": "Factory / Manufacturing"}]),
                  "b.xlsx", "gst", cursor=fake_store)
    tags = sorted(r["business_nature"] for r in fake_store.rows("gst_business_natures"))
    assert tags == ["Factory / Manufacturing", "Retail Business"]


def test_1200_mca_rows_three_batches(fake_store, xlsx_bytes):
    rows = [{"CIN": f"U{i:06d}", "DIN": f"{i:08d}", "Company": f"Company {i}"} for i in range(1200)]
    result = ingest_upload(xlsx_bytes(rows), "mca.xlsx", "mca", cursor=fake_store)
    assert result.inserted_records == result.total_records == 1200
    assert result.batches == 3
    assert fake_store.committed_statements == 3
    assert len(fake_store.rows("mca_new_leads")) == 1200


def test_failed_batch_keeps_earlier_batches(fake_store, xlsx_bytes, tmp_path):
    rows = [{"CIN": f"U{i:06d}", "DIN": f"{i:08d}"} for i in range(25)]
    fake_store.fail_on_statement = 2
    error_log = ErrorLogBuffer(tmp_path / "logs")
    with pytest.raises(BatchExecutionFailure) as ei:
        ingest_upload(xlsx_bytes(rows), "mca.xlsx", "mca", cursor=fake_store,
                      batch_size=10, error_log=error_log)
    assert ei.value.committed_batches == 1
    assert len(fake_store.rows("mca_new_leads")) == 10
    [rec] = error_log.records
    assert rec.row == -1 and rec.error_type == "BATCH_EXECUTION_FAILURE"


def test_unknown_kind_rejected_before_parsing():
    with pytest.raises(UnknownRecordKind):
        ingest_upload(b"%PDF-1.4", "leads.pdf", "pan")


def test_unsupported_format_writes_nothing(fake_store):
    with pytest.raises(UnsupportedFormat):
        ingest_upload(b"%PDF-1.4", "leads.pdf", "gst", cursor=fake_store)
    assert fake_store.tables == {}


def test_dry_run_counts_without_cursor(xlsx_bytes):
    result = ingest_upload(_gst_upload(xlsx_bytes), "gst.xlsx", "gst", cursor=None)
    assert result.dry_run
    assert result.inserted_records == 1
    assert result.total_records == 2


def test_inserted_never_exceeds_total(fake_store):
    content = b"CIN,DIN\nU1,1\nU2,\n,3\nU4,4\n"
    result = ingest_upload(content, "mca.csv", "mca", cursor=fake_store)
    assert result.total_records == 4
    assert result.inserted_records == 2
    assert result.inserted_records <= result.total_records


def test_csv_numeric_dates(fake_store):
    content = b"IEC,ISSUE DATE,DOB\n0512345678,45000,1710441000000\n"
    ingest_upload(content, "iec.csv", "iec", cursor=fake_store)
    [row] = fake_store.rows("iec_leads")
    assert row["iec_code"] == "0512345678"
    assert row["issue_date"] == "2023-03-15"
    assert row["dob"] == "2024-03-15"
