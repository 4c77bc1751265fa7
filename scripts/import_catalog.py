#!/usr/bin/env python3
"""
Import the catalog export into the catalog database.

Reads the JSON-lines export under IMPORT_DATA_DIR (default data/convex) and
loads collections, categories, subcollections, subcategories and products in
that order. Intended for an empty database; re-running against imported data
is not supported.

Required environment:
 CATALOG_DB_URL, CATALOG_DB_AUTH_TOKEN

Usage:
 python scripts/import_catalog.py
"""

from __future__ import annotations

import sys
from pathlib import Path

import psycopg
from rich.console import Console

sys.path.insert(0, str(Path(__file__).parent))
from catalog_import import CatalogImporter
from db_utils import CatalogStore
from catalog_settings import CatalogError, load_settings

console = Console()


def main() -> int:
    try:
        settings = load_settings()
        with CatalogStore.connect(settings) as store:
            CatalogImporter(
                store,
                settings.import_data_dir,
                batch_size=settings.import_batch_size,
                product_batch_size=settings.product_batch_size,
                console=console,
            ).run()
    except CatalogError as e:
        console.print(f"[red]❌ Error during import: {e}[/red]")
        return 1
    except psycopg.Error as e:
        console.print(f"[red]❌ Database error during import: {e}[/red]")
        return 1
    except OSError as e:
        console.print(f"[red]❌ Could not read export: {e}[/red]")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
