"""Record kinds, row validation and row transformation."""

from .dates import normalize_date
from .registry import REGISTRY, RecordKind, RecordSpec, UnknownRecordKind, get_spec, resolve_kind, transform_rows
from .transform import CanonicalRecord, parse_business_natures
from .validator import RowRejection, filter_valid_rows, partition_rows

__all__ = [
    "REGISTRY",
    "CanonicalRecord",
    "RecordKind",
    "RecordSpec",
    "RowRejection",
    "UnknownRecordKind",
    "filter_valid_rows",
    "get_spec",
    "normalize_date",
    "parse_business_natures",
    "partition_rows",
    "resolve_kind",
    "transform_rows",
]
