from __future__ import annotations

from typing import Any

from ..records.registry import REGISTRY, RecordSpec
from .batch_upsert import quote_ident

"""CREATE TABLE DDL derived from the record registry.

The unique constraints emitted here are the conflict targets the upsert
statements rely on.
"""

__all__ = [
    "table_ddl",
    "create_tables",
]


def table_ddl(spec: RecordSpec) -> list[str]:
    cols = ",\n    ".join(f"{quote_ident(c.name)} {c.sql_type}" for c in spec.columns)
    key = ",".join(quote_ident(c) for c in spec.conflict_columns)
    statements = [
        f"CREATE TABLE IF NOT EXISTS {quote_ident(spec.table)} (\n"
        f"    id BIGSERIAL PRIMARY KEY,\n"
        f"    {cols},\n"
        f"    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),\n"
        f"    UNIQUE ({key})\n"
        f")"
    ]
    if spec.child is not None:
        child = spec.child
        statements.append(
            f"CREATE TABLE IF NOT EXISTS {quote_ident(child.table)} (\n"
            f"    id BIGSERIAL PRIMARY KEY,\n"
            f"    {quote_ident(child.parent_key)} TEXT NOT NULL,\n"
            f"    {quote_ident(child.value_column)} TEXT NOT NULL,\n"
            f"    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),\n"
            f"    UNIQUE ({quote_ident(child.parent_key)},{quote_ident(child.value_column)})\n"
            f")"
        )
    return statements


def create_tables(cursor: Any) -> int:
    """Create every destination table that does not exist yet; returns statements run."""
    count = 0
    cursor.execute("BEGIN")
    try:
        for spec in REGISTRY.values():
            for stmt in table_ddl(spec):
                cursor.execute(stmt)
                count += 1
        cursor.execute("COMMIT")
    except Exception:
        cursor.execute("ROLLBACK")
        raise
    return count
