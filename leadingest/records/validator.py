from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .registry import RecordKind, get_spec

"""Mandatory-field row validation.

``partition_rows`` keeps the order of accepted rows and reports every dropped
row with the mandatory headers it was missing, so the caller can log or
surface them. ``filter_valid_rows`` is the accepted half only.
"""

__all__ = [
    "RowRejection",
    "is_present",
    "partition_rows",
    "filter_valid_rows",
]


@dataclass(frozen=True)
class RowRejection:
    row_number: int  # 1-based data row (header row excluded)
    missing_fields: tuple[str, ...]


def is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, float) and value != value:  # NaN
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def partition_rows(
    kind: str | RecordKind, rows: Iterable[Mapping[str, Any]]
) -> tuple[list[Mapping[str, Any]], list[RowRejection]]:
    mandatory = sorted(get_spec(kind).mandatory_fields)
    accepted: list[Mapping[str, Any]] = []
    rejected: list[RowRejection] = []
    for idx, row in enumerate(rows, start=1):
        missing = tuple(f for f in mandatory if not is_present(row.get(f)))
        if missing:
            rejected.append(RowRejection(row_number=idx, missing_fields=missing))
        else:
            accepted.append(row)
    return accepted, rejected


def filter_valid_rows(kind: str | RecordKind, rows: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    return partition_rows(kind, rows)[0]
