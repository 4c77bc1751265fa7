"""
Shared database utilities for the catalog scripts and API.

Provides CatalogStore, the one client object every component receives for
store access. It wraps a single psycopg3 connection opened from settings and
is meant to be used as a context manager at process boundaries:

    with CatalogStore.connect(settings) as store:
        store.insert_rows("collections", rows)

The connection runs in autocommit mode; multi-row writes open an explicit
transaction so each chunk lands atomically.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from catalog_settings import CatalogError, Settings


class StoreError(CatalogError):
    """The catalog database could not be reached."""


class CatalogStore:
    """Client over one psycopg connection with dict rows."""

    def __init__(self, conn: psycopg.Connection):
        self.conn = conn

    @classmethod
    def connect(cls, settings: Settings) -> CatalogStore:
        """
        Open a connection to the catalog database.

        The auth token is sent as the connection password and overrides any
        password embedded in the URL.

        Raises:
            StoreError: If the database is unreachable or rejects the login.
        """
        try:
            conn = psycopg.connect(
                settings.catalog_db_url,
                password=settings.catalog_db_auth_token,
                autocommit=True,
                row_factory=dict_row,
            )
        except psycopg.OperationalError as e:
            raise StoreError(f"Could not connect to catalog database: {e}") from e
        return cls(conn)

    def __enter__(self) -> CatalogStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if not self.conn.closed:
            self.conn.close()

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    def insert_rows(self, table: str, rows: Sequence[dict[str, Any]]) -> int:
        """
        Insert rows in one transaction, skipping natural-key conflicts.

        All rows must share the keys of the first row.

        Returns:
            Number of rows actually inserted.
        """
        if not rows:
            return 0

        columns = list(rows[0])
        statement = sql.SQL(
            "INSERT INTO {table} ({columns}) VALUES ({values}) ON CONFLICT DO NOTHING"
        ).format(
            table=sql.Identifier(table),
            columns=sql.SQL(", ").join(map(sql.Identifier, columns)),
            values=sql.SQL(", ").join(sql.Placeholder() * len(columns)),
        )

        with self.conn.transaction():
            with self.conn.cursor() as cursor:
                cursor.executemany(
                    statement,
                    [tuple(row[c] for c in columns) for row in rows],
                )
                return cursor.rowcount

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    def fetch_rows(self, table: str, columns: Iterable[str]) -> list[dict[str, Any]]:
        """Read the given columns of every row in a table."""
        statement = sql.SQL("SELECT {columns} FROM {table}").format(
            columns=sql.SQL(", ").join(map(sql.Identifier, columns)),
            table=sql.Identifier(table),
        )
        return self.query(statement)

    def query(
        self,
        statement: str | sql.Composable,
        params: Sequence[Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Run a read query and return all rows as dicts."""
        with self.conn.cursor() as cursor:
            cursor.execute(statement, params)
            return cursor.fetchall()

    def query_one(
        self,
        statement: str | sql.Composable,
        params: Sequence[Any] | None = None,
    ) -> dict[str, Any] | None:
        """Run a read query and return the first row, or None."""
        with self.conn.cursor() as cursor:
            cursor.execute(statement, params)
            return cursor.fetchone()
