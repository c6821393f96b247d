# Shared pytest fixtures
from __future__ import annotations

import io
import re
from pathlib import Path
from typing import Any

import pandas as pd
import pytest


@pytest.fixture()
def temp_workdir(tmp_path: Path, monkeypatch) -> Path:
    (tmp_path / "config").mkdir()
    (tmp_path / "data").mkdir()
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("PGDSN", raising=False)
    return tmp_path


def make_xlsx(rows: list[dict[str, Any]], columns: list[str] | None = None) -> bytes:
    """Build an in-memory .xlsx whose first row is the header."""
    df = pd.DataFrame(rows, columns=columns)
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Sheet1", header=True, index=False)
    return buf.getvalue()


@pytest.fixture()
def xlsx_bytes():
    return make_xlsx


class DummyCursor:
    """Records every statement issued through execute / execute_values."""

    def __init__(self) -> None:
        self.statements: list[str] = []
        self.values_calls: list[tuple[str, list[tuple]]] = []

    def execute(self, sql: str, params: Any = None) -> None:
        self.statements.append(sql)

    @property
    def upserts(self) -> list[tuple[str, list[tuple]]]:
        return self.values_calls


@pytest.fixture()
def dummy_cursor() -> DummyCursor:
    return DummyCursor()


@pytest.fixture()
def patch_execute_values(monkeypatch):
    """Replace psycopg2's execute_values with a recorder bound to DummyCursor."""
    import leadingest.db.batch_upsert as bu

    def fake_execute_values(cursor, sql, rows, page_size=100, template=None):
        cursor.statements.append(sql)
        cursor.values_calls.append((sql, list(rows)))

    monkeypatch.setattr(bu, "execute_values", fake_execute_values)
    return fake_execute_values


_INSERT_RE = re.compile(r'INSERT INTO "(\w+)" \(([^)]*)\) VALUES %s ON CONFLICT \(([^)]*)\) (DO UPDATE|DO NOTHING)')


class FakeStore:
    """Tiny in-memory stand-in for PostgreSQL upsert semantics.

    Tables are dicts keyed by the conflict-column tuple. Statements inside an
    open transaction are staged and only applied on COMMIT.
    """

    def __init__(self) -> None:
        self.tables: dict[str, dict[tuple, dict[str, Any]]] = {}
        self.committed_statements = 0
        self._pending: list[tuple[str, list[str], list[str], bool, list[tuple]]] = []
        self.fail_on_statement: int | None = None
        self._statement_no = 0

    def rows(self, table: str) -> list[dict[str, Any]]:
        return list(self.tables.get(table, {}).values())

    def execute_values(self, cursor, sql, rows, page_size=100, template=None):
        self._statement_no += 1
        if self.fail_on_statement == self._statement_no:
            raise RuntimeError("simulated constraint violation")
        m = _INSERT_RE.search(sql)
        assert m, sql
        table = m.group(1)
        cols = [c.strip('"') for c in m.group(2).split(",")]
        keys = [c.strip('"') for c in m.group(3).split(",")]
        self._pending.append((table, cols, keys, m.group(4) == "DO UPDATE", list(rows)))

    def execute(self, sql: str, params: Any = None) -> None:
        if sql == "BEGIN":
            self._pending = []
        elif sql == "ROLLBACK":
            self._pending = []
        elif sql == "COMMIT":
            for table, cols, keys, update, rows in self._pending:
                store = self.tables.setdefault(table, {})
                for row in rows:
                    rec = dict(zip(cols, row))
                    key = tuple(rec[k] for k in keys)
                    if key in store and not update:
                        continue
                    store[key] = rec
                self.committed_statements += 1
            self._pending = []


@pytest.fixture()
def fake_store(monkeypatch) -> FakeStore:
    import leadingest.db.batch_upsert as bu

    store = FakeStore()
    monkeypatch.setattr(bu, "execute_values", store.execute_values)
    return store
