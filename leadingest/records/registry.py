from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import IngestError
from .schema import GST_COLUMNS, IEC_COLUMNS, MCA_COLUMNS, Column
from .transform import CanonicalRecord, transform_gst, transform_iec, transform_mca

"""Record kind registry.

Static, read-only binding of each supported record kind to its destination
table, column table, mandatory source headers, natural key and transform.
"""

__all__ = [
    "RecordKind",
    "RecordSpec",
    "ChildTableSpec",
    "UnknownRecordKind",
    "REGISTRY",
    "resolve_kind",
    "get_spec",
    "transform_rows",
]


class UnknownRecordKind(IngestError):
    """Raised when a declared record kind is not one of mca / iec / gst."""


class RecordKind(str, Enum):
    MCA = "mca"
    IEC = "iec"
    GST = "gst"


@dataclass(frozen=True)
class ChildTableSpec:
    """One-to-many fan-out table keyed by the parent's natural key."""
    table: str
    parent_key: str  # column in both parent and child table
    value_column: str

    @property
    def columns(self) -> tuple[str, str]:
        return (self.parent_key, self.value_column)


@dataclass(frozen=True)
class RecordSpec:
    kind: RecordKind
    table: str
    columns: tuple[Column, ...]
    mandatory_fields: frozenset[str]  # source headers that must be non-empty
    conflict_columns: tuple[str, ...]  # natural key, never rewritten on conflict
    transform: Callable[[Iterable[Mapping[str, Any]]], list[CanonicalRecord]]
    child: ChildTableSpec | None = None

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def update_columns(self) -> list[str]:
        return [c.name for c in self.columns if c.name not in self.conflict_columns]


REGISTRY: dict[RecordKind, RecordSpec] = {
    RecordKind.MCA: RecordSpec(
        kind=RecordKind.MCA,
        table="mca_new_leads",
        columns=MCA_COLUMNS,
        mandatory_fields=frozenset({"CIN", "DIN"}),
        conflict_columns=("cin", "din"),
        transform=transform_mca,
    ),
    RecordKind.IEC: RecordSpec(
        kind=RecordKind.IEC,
        table="iec_leads",
        columns=IEC_COLUMNS,
        mandatory_fields=frozenset({"IEC"}),
        conflict_columns=("iec_code",),
        transform=transform_iec,
    ),
    RecordKind.GST: RecordSpec(
        kind=RecordKind.GST,
        table="gst_basics",
        columns=GST_COLUMNS,
        mandatory_fields=frozenset({"GSTIN"}),
        conflict_columns=("gstin",),
        transform=transform_gst,
        child=ChildTableSpec(
            table="gst_business_natures",
            parent_key="gstin",
            value_column="business_nature",
        ),
    ),
}


def resolve_kind(name: str | RecordKind) -> RecordKind:
    if isinstance(name, RecordKind):
        return name
    try:
        return RecordKind(str(name).strip().lower())
    except ValueError:
        allowed = "|".join(k.value for k in RecordKind)
        raise UnknownRecordKind(f"invalid record type {name!r} (expected {allowed})") from None


def get_spec(kind: str | RecordKind) -> RecordSpec:
    return REGISTRY[resolve_kind(kind)]


def transform_rows(kind: str | RecordKind, rows: Iterable[Mapping[str, Any]]) -> list[CanonicalRecord]:
    """Map validated raw rows to canonical records for ``kind``."""
    return get_spec(kind).transform(rows)
