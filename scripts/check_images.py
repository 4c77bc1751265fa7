#!/usr/bin/env python3
"""
Check image data in the catalog database.

Shows a sample of products, categories and subcategories with their image
URLs, and counts products with and without an image.

Usage:
 python scripts/check_images.py
 python scripts/check_images.py --sample 10
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import psycopg
from psycopg import sql
from rich.console import Console
from rich.table import Table

sys.path.insert(0, str(Path(__file__).parent))
from db_utils import CatalogStore
from catalog_settings import CatalogError, load_settings

console = Console()

SAMPLED_TABLES = (
    ("📦 Sample Products", "products"),
    ("📁 Sample Categories", "categories"),
    ("📋 Sample Subcategories", "subcategories"),
)


def sample_rows(store: CatalogStore, table: str, limit: int) -> list[dict]:
    return store.query(
        sql.SQL("SELECT name, image_url FROM {table} LIMIT %s").format(
            table=sql.Identifier(table)
        ),
        [limit],
    )


def image_counts(store: CatalogStore) -> dict[str, int]:
    """Total products and how many carry an image URL."""
    row = store.query_one(
        """
        SELECT count(*) AS total, count(image_url) AS with_images
        FROM products
        """
    )
    total = row["total"] if row else 0
    with_images = row["with_images"] if row else 0
    return {"total": total, "with_images": with_images, "without_images": total - with_images}


def display_sample(title: str, rows: list[dict]) -> None:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Name", style="cyan", max_width=40)
    table.add_column("Image URL")

    for i, row in enumerate(rows, start=1):
        url = row["image_url"]
        shown = f"[green]✅ {url[:60]}...[/green]" if url else "[red]❌ NULL[/red]"
        table.add_row(str(i), row["name"], shown)

    console.print(table)


def main() -> int:
    parser = argparse.ArgumentParser(description="Check image data in the catalog")
    parser.add_argument("--sample", type=int, default=5, help="Rows to show per table")
    args = parser.parse_args()

    console.print("[bold]🔍 Checking image data in database...[/bold]")
    console.print()

    try:
        settings = load_settings()
        with CatalogStore.connect(settings) as store:
            for title, table in SAMPLED_TABLES:
                display_sample(title, sample_rows(store, table, args.sample))
            counts = image_counts(store)
    except (CatalogError, psycopg.Error) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    console.print()
    console.print(f"📊 Products with images: {counts['with_images']}")
    console.print(f"📊 Total products: {counts['total']}")
    console.print(f"📊 Products without images: {counts['without_images']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
