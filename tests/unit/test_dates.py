from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone

import numpy as np
import pandas as pd
import pytest

from leadingest.records.dates import normalize_date


@pytest.mark.parametrize(
    "value, expected",
    [
        ("15/03/2024", "2024-03-15"),
        ("5/3/2024", "2024-05-03"),  # month-first wins when both are valid
        ("03/04/2024", "2024-03-04"),
        ("31/12/2023", "2023-12-31"),
        ("2024-03-15", "2024-03-15"),
        (" 2024-03-15 ", "2024-03-15"),
        ("2024-03-14T20:00:00Z", "2024-03-15"),
        ("2024-03-14T20:00:00+05:30", "2024-03-14"),
        ("15 March 2024", "2024-03-15"),
    ],
)
def test_normalize_date_strings(value, expected):
    assert normalize_date(value) == expected


def test_excel_serial_dates():
    assert normalize_date(45000) == "2023-03-15"
    assert normalize_date(45000.0) == "2023-03-15"
    assert normalize_date(np.int64(45000)) == "2023-03-15"
    # 21:36 UTC is already the next day in IST
    assert normalize_date(45000.9) == "2023-03-16"


def test_epoch_millis():
    # 2024-03-14T18:30:00Z == 2024-03-15 00:00 IST
    assert normalize_date(1710441000000) == "2024-03-15"
    assert normalize_date(1710440999000) == "2024-03-14"


def test_structured_dates():
    assert normalize_date(datetime(2024, 3, 15)) == "2024-03-15"
    assert normalize_date(datetime(2024, 3, 14, 20, 0, tzinfo=UTC)) == "2024-03-15"
    assert normalize_date(pd.Timestamp("2024-03-15")) == "2024-03-15"
    assert normalize_date(date(2024, 3, 15)) == "2024-03-15"
    est = timezone(timedelta(hours=-5))
    assert normalize_date(datetime(2024, 3, 14, 23, 0, tzinfo=est)) == "2024-03-15"


@pytest.mark.parametrize(
    "value",
    [None, "", "   ", float("nan"), pd.NaT, True, "not a date", "31/31/2024", "today", "now", " Today ", "NOW"],
)
def test_absent_or_unparseable(value):
    assert normalize_date(value) is None


def test_out_of_range_serial_is_absent():
    assert normalize_date(1e11) is None


def test_numeric_text_is_read_as_number():
    assert normalize_date("45000") == "2023-03-15"
    assert normalize_date(" 45000.9 ") == "2023-03-16"
    assert normalize_date("1710441000000") == "2024-03-15"
