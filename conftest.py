"""Shared pytest fixtures: an in-memory stand-in for CatalogStore."""

from __future__ import annotations

import io
import sys
from collections import defaultdict
from pathlib import Path

import pytest
from rich.console import Console

sys.path.insert(0, str(Path(__file__).parent / "scripts"))


class InMemoryStore:
    """
    Implements the CatalogStore surface used by the importer and queries.

    Serial tables get ids starting at `first_id` so internal ids never
    coincide with export ids in tests. Natural-key conflicts are skipped like
    ON CONFLICT DO NOTHING. Read queries return queued results in order.
    """

    NATURAL_KEYS = {
        "collections": "slug",
        "categories": "slug",
        "subcategories": "slug",
        "products": "slug",
        "users": "username",
    }
    SERIAL_TABLES = {"collections", "subcollections", "users"}

    def __init__(self, first_id: int = 100):
        self.tables: dict[str, list[dict]] = defaultdict(list)
        self.insert_calls: list[tuple[str, int]] = []
        self.queries: list[tuple[object, object]] = []
        self.results: list[object] = []
        self.fail_on_insert_call: int | None = None
        self._next_id = first_id

    def insert_rows(self, table, rows):
        self.insert_calls.append((table, len(rows)))
        if self.fail_on_insert_call == len(self.insert_calls):
            raise RuntimeError(f"insert into {table} failed")

        key = self.NATURAL_KEYS.get(table)
        existing = {r[key] for r in self.tables[table]} if key else set()
        inserted = 0
        for row in rows:
            if key and row[key] in existing:
                continue
            row = dict(row)
            if table in self.SERIAL_TABLES:
                row["id"] = self._next_id
                self._next_id += 1
            self.tables[table].append(row)
            if key:
                existing.add(row[key])
            inserted += 1
        return inserted

    def fetch_rows(self, table, columns):
        return [{c: row[c] for c in columns} for row in self.tables[table]]

    def query(self, statement, params=None):
        self.queries.append((statement, params))
        return self.results.pop(0) if self.results else []

    def query_one(self, statement, params=None):
        self.queries.append((statement, params))
        return self.results.pop(0) if self.results else None


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def quiet_console() -> Console:
    """Console writing to a buffer; read it back via console.file.getvalue()."""
    return Console(file=io.StringIO(), width=200, color_system=None)
