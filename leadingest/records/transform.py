from __future__ import annotations

import ast
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

import numpy as np

from .dates import normalize_date
from .schema import GST_BUSINESS_NATURE_SOURCE, GST_COLUMNS, IEC_COLUMNS, MCA_COLUMNS, Column

"""Row transformation: raw spreadsheet rows -> canonical column-keyed records.

Pure functions, no I/O. Rows are expected to have passed the validator for
their kind already.
"""

__all__ = [
    "CanonicalRecord",
    "coerce_text",
    "map_columns",
    "parse_business_natures",
    "transform_mca",
    "transform_iec",
    "transform_gst",
]


@dataclass(frozen=True)
class CanonicalRecord:
    """One validated row keyed by destination column name.

    ``business_natures`` is only populated for GST records and is written to
    the child table, not to the main row.
    """
    values: dict[str, Any]
    business_natures: list[str] = field(default_factory=list)


def coerce_text(value: Any) -> str | None:
    """Coerce a cell to a trimmed string, keeping identifiers intact.

    Integral floats (how spreadsheets hand back phone numbers and pincodes)
    lose their ``.0`` suffix. Empty results map to ``None``.
    """
    if value is None:
        return None
    if isinstance(value, (float, np.floating)):
        if math.isnan(value):
            return None
        if float(value).is_integer():
            return str(int(value))
        return repr(float(value))
    if isinstance(value, np.integer):
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    return text or None


def map_columns(columns: Sequence[Column], row: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for col in columns:
        raw = row.get(col.source)
        values[col.name] = normalize_date(raw) if col.is_date else coerce_text(raw)
    return values


def _split_items(text: str) -> list[str]:
    return [part.strip().strip("'\"").strip() for part in text.split(",")]


def parse_business_natures(value: Any) -> list[str]:
    """Parse the GST "Business Nature" cell into a list of tags.

    Accepted shapes: a list, ``"['Retail Business', "Wholesale Business"]"``,
    ``"Retail Business, Wholesale Business"`` or a single value.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = [coerce_text(v) or "" for v in value]
    else:
        text = coerce_text(value)
        if text is None:
            return []
        if text.startswith("[") and text.endswith("]"):
            try:
                parsed = ast.literal_eval(text)
            except (ValueError, SyntaxError):
                parsed = None
            if isinstance(parsed, (list, tuple)):
                items = [coerce_text(v) or "" for v in parsed]
            else:
                items = _split_items(text[1:-1])
        elif "," in text:
            items = _split_items(text)
        else:
            items = [text]
    return [item.strip() for item in items if item and item.strip()]


def transform_mca(rows: Iterable[Mapping[str, Any]]) -> list[CanonicalRecord]:
    return [CanonicalRecord(values=map_columns(MCA_COLUMNS, row)) for row in rows]


def transform_iec(rows: Iterable[Mapping[str, Any]]) -> list[CanonicalRecord]:
    return [CanonicalRecord(values=map_columns(IEC_COLUMNS, row)) for row in rows]


def transform_gst(rows: Iterable[Mapping[str, Any]]) -> list[CanonicalRecord]:
    return [
        CanonicalRecord(
            values=map_columns(GST_COLUMNS, row),
            business_natures=parse_business_natures(row.get(GST_BUSINESS_NATURE_SOURCE)),
        )
        for row in rows
    ]
