#!/usr/bin/env python3
"""
Initialize the Catalog Schema

Applies schemas/catalog-schema.sql (collections, categories, subcollections,
subcategories, products, users) to the catalog database and lists the tables
that exist afterwards.

Usage:
    python scripts/init_schema.py
    python scripts/init_schema.py --search-index
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import psycopg
from rich.console import Console

sys.path.insert(0, str(Path(__file__).parent))
from db_utils import CatalogStore
from catalog_settings import CatalogError, load_settings

SCHEMA_DIR = Path(__file__).parent.parent / "schemas"
SCHEMA_FILE = SCHEMA_DIR / "catalog-schema.sql"
SEARCH_INDEX_FILE = SCHEMA_DIR / "add-search-index.sql"

CATALOG_TABLES = (
    "categories",
    "collections",
    "products",
    "subcategories",
    "subcollections",
    "users",
)

console = Console()


def run_sql_file(store: CatalogStore, path: Path) -> None:
    """Run one SQL file inside a transaction."""
    console.print(f"📄 Loading {path.name}...")
    statements = path.read_text()
    with store.conn.transaction():
        store.conn.execute(statements)
    console.print(f"[green]✓ Applied {path.name}[/green]")


def list_tables(store: CatalogStore) -> list[str]:
    rows = store.query(
        """
        SELECT table_name
        FROM information_schema.tables
        WHERE table_schema = current_schema()
          AND table_name = ANY(%s)
        ORDER BY table_name
        """,
        [list(CATALOG_TABLES)],
    )
    return [row["table_name"] for row in rows]


def main() -> int:
    parser = argparse.ArgumentParser(description="Initialize the catalog schema")
    parser.add_argument(
        "--search-index",
        action="store_true",
        help="Also create the case-insensitive product name index",
    )
    args = parser.parse_args()

    console.print("[bold]Catalog - Schema Initialization[/bold]")
    console.print("=" * 40)

    try:
        settings = load_settings()
        with CatalogStore.connect(settings) as store:
            run_sql_file(store, SCHEMA_FILE)
            if args.search_index:
                run_sql_file(store, SEARCH_INDEX_FILE)

            tables = list_tables(store)
    except (CatalogError, psycopg.Error, OSError) as e:
        console.print(f"[red]✗ Schema initialization failed: {e}[/red]")
        return 1

    console.print("\n📊 Tables present:")
    for table in tables:
        console.print(f"  ✓ {table}")

    missing = sorted(set(CATALOG_TABLES) - set(tables))
    if missing:
        console.print(f"[red]✗ Missing tables: {', '.join(missing)}[/red]")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
