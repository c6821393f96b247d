from __future__ import annotations

import io
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any

import pandas as pd

from ..errors import IngestError

"""Spreadsheet reader for uploaded lead files.

The container format is taken from the original filename's extension
(xlsx / xls / csv); files without an extension are sniffed by magic bytes.
Only the first sheet is read and its first row is the header row.

CSV cells are read as text so identifiers such as PIN codes or DINs keep
their leading zeros. Excel cells keep their stored type (str / int / float /
Timestamp) and are normalized later by the record transformer.
"""

__all__ = [
    "SUPPORTED_FORMATS",
    "SheetData",
    "UnsupportedFormat",
    "UploadTooLarge",
    "detect_format",
    "normalize_sheet",
    "read_upload",
]

SUPPORTED_FORMATS = ("xlsx", "xls", "csv")

_ZIP_MAGIC = b"PK\x03\x04"
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

_ENGINES = {
    "xlsx": "openpyxl",
    "xls": "xlrd",
}


class UnsupportedFormat(IngestError):
    """Raised when an upload is not a decodable xlsx / xls / csv container."""


class UploadTooLarge(IngestError):
    """Raised when an upload exceeds the configured size limit."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[dict[str, Any]]  # header -> raw cell value

    def __len__(self) -> int:
        return len(self.rows)


def detect_format(filename: str, content: bytes = b"") -> str:
    """Return the container format for an upload or raise ``UnsupportedFormat``."""
    ext = PurePath(filename or "").suffix.lower().lstrip(".")
    if ext:
        if ext not in SUPPORTED_FORMATS:
            raise UnsupportedFormat(f"unsupported file type: .{ext}")
        return ext
    if content.startswith(_ZIP_MAGIC):
        return "xlsx"
    if content.startswith(_OLE2_MAGIC):
        return "xls"
    raise UnsupportedFormat(f"cannot infer file type of {filename!r}")


def _read_frame(content: bytes, fmt: str) -> tuple[str, pd.DataFrame]:
    buf = io.BytesIO(content)
    if fmt == "csv":
        df = pd.read_csv(
            buf, header=None, dtype=str, keep_default_na=False, skip_blank_lines=True
        )
        return "csv", df
    xls = pd.ExcelFile(buf, engine=_ENGINES[fmt])
    if not xls.sheet_names:
        raise UnsupportedFormat("workbook contains no sheets")
    name = xls.sheet_names[0]
    # header=None: the header row is applied in normalize_sheet
    df = xls.parse(name, header=None, dtype=object)
    return str(name), df


def normalize_sheet(
    df: pd.DataFrame,
    sheet_name: str,
    null_sentinels: set[str] | None = None,
) -> SheetData:
    """Apply the first row as header and turn remaining rows into dicts.

    Entirely empty rows are skipped. Whitespace-only strings and values in
    ``null_sentinels`` (compared upper-cased) become ``None``.
    """
    if df.shape[0] == 0:
        return SheetData(sheet_name=sheet_name, columns=[], rows=[])
    header = df.iloc[0].tolist()
    columns = ["" if pd.isna(c) else str(c).strip() for c in header]
    rows: list[dict[str, Any]] = []
    for _, raw in df.iloc[1:].iterrows():
        row: dict[str, Any] = {}
        for col, val in zip(columns, raw.tolist(), strict=False):
            if not col:
                continue
            if val is None or (not isinstance(val, str) and pd.isna(val)):
                row[col] = None
                continue
            if isinstance(val, str):
                stripped = val.strip()
                if not stripped or (null_sentinels and stripped.upper() in null_sentinels):
                    row[col] = None
                    continue
            row[col] = val
        if all(v is None for v in row.values()):
            continue
        rows.append(row)
    return SheetData(sheet_name=sheet_name, columns=[c for c in columns if c], rows=rows)


def read_upload(
    content: bytes,
    filename: str,
    null_sentinels: Iterable[str] | None = None,
    max_bytes: int | None = None,
) -> SheetData:
    """Decode an uploaded spreadsheet into ordered header-keyed rows.

    Raises ``UploadTooLarge`` before decoding when ``max_bytes`` is exceeded
    and ``UnsupportedFormat`` when the container cannot be read.
    """
    if max_bytes is not None and len(content) > max_bytes:
        raise UploadTooLarge(f"upload is {len(content)} bytes, limit is {max_bytes}")
    fmt = detect_format(filename, content)
    try:
        sheet_name, df = _read_frame(content, fmt)
    except UnsupportedFormat:
        raise
    except pd.errors.EmptyDataError:
        return SheetData(sheet_name="csv", columns=[], rows=[])
    except Exception as e:
        raise UnsupportedFormat(f"could not read {fmt} upload {filename!r}: {e}") from e
    sentinels = {s.strip().upper() for s in null_sentinels} if null_sentinels else None
    return normalize_sheet(df, sheet_name, null_sentinels=sentinels)
