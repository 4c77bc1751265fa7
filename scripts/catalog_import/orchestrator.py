"""
Catalog import orchestration.

Entities are imported strictly in dependency order:

    collections -> categories -> subcollections -> subcategories -> products

Each step reads its export file, resolves the parent reference produced by
the previous step, drops records whose parent is missing (one warning each),
and inserts the rest in batches. Collections and subcollections are
referenced by external id, so their steps return an external -> internal id
remapping. Categories and subcategories are referenced by slug, so their
steps return the set of slugs that actually landed in the store.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator

from rich.console import Console
from rich.table import Table

from .batching import DEFAULT_BATCH_SIZE, insert_in_batches
from .records import (
    CategoryRecord,
    CollectionRecord,
    EntityType,
    ProductRecord,
    SubcategoryRecord,
    SubcollectionRecord,
    iter_jsonl,
    read_jsonl,
)
from .remap import build_key_index, build_remapping, load_key_set

# Export layout, relative to the data directory
ENTITY_FILES: dict[EntityType, Path] = {
    entity: Path(entity.value) / "documents.jsonl" for entity in EntityType
}


@dataclass
class EntityStats:
    """Per-entity counts for one run."""

    read: int = 0
    dropped: int = 0
    inserted: int = 0


@dataclass
class ImportSummary:
    """Result of a full import run."""

    stats: dict[EntityType, EntityStats] = field(
        default_factory=lambda: {entity: EntityStats() for entity in EntityType}
    )
    elapsed_seconds: float = 0.0

    @property
    def total_inserted(self) -> int:
        return sum(s.inserted for s in self.stats.values())


class CatalogImporter:
    """
    Runs the five-step catalog import against one store.

    Usage:
        with CatalogStore.connect(settings) as store:
            summary = CatalogImporter(store, settings.import_data_dir).run()
    """

    def __init__(
        self,
        store,
        data_dir: Path,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        product_batch_size: int = DEFAULT_BATCH_SIZE,
        console: Console | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.store = store
        self.data_dir = Path(data_dir)
        self.batch_size = batch_size
        self.product_batch_size = product_batch_size
        self.console = console or Console()
        self.clock = clock
        self.summary = ImportSummary()

    def path_for(self, entity: EntityType) -> Path:
        return self.data_dir / ENTITY_FILES[entity]

    def _warn(self, message: str) -> None:
        self.console.print(f"   [yellow]Warning: {message}[/yellow]")

    def _insert(
        self,
        entity: EntityType,
        rows: Iterable[dict[str, Any]],
        batch_size: int | None = None,
    ) -> None:
        result = insert_in_batches(
            self.store,
            entity.value,
            rows,
            batch_size=batch_size or self.batch_size,
            label=entity.value,
            console=self.console,
        )
        stats = self.summary.stats[entity]
        stats.inserted = result.inserted
        self.console.print(f"   [green]✓ Imported {result.inserted} {entity.value}[/green]")

    # -----------------------------------------------------------------------
    # Steps
    # -----------------------------------------------------------------------

    def import_collections(self) -> dict[int, int]:
        """Insert collections; return external id -> internal id."""
        self.console.print("[bold]📦 Importing collections...[/bold]")
        records = read_jsonl(self.path_for(EntityType.COLLECTION), CollectionRecord)
        self.summary.stats[EntityType.COLLECTION].read = len(records)
        self.console.print(f"   Found {len(records)} collections")

        self._insert(EntityType.COLLECTION, [r.to_row() for r in records])

        key_index = build_key_index(self.store, EntityType.COLLECTION.value, ["slug"])
        return build_remapping(
            records,
            key_index,
            external_id=lambda r: r.external_id,
            natural_key=lambda r: r.slug,
            label="Collection",
            console=self.console,
        )

    def import_categories(self, collection_map: dict[int, int]) -> set[str]:
        """Insert categories under remapped collections; return inserted slugs."""
        self.console.print("[bold]📁 Importing categories...[/bold]")
        records = read_jsonl(self.path_for(EntityType.CATEGORY), CategoryRecord)
        stats = self.summary.stats[EntityType.CATEGORY]
        stats.read = len(records)
        self.console.print(f"   Found {len(records)} categories")

        rows = []
        for record in records:
            collection_id = collection_map.get(record.collection_id)
            if collection_id is None:
                self._warn(
                    f"Collection ID {record.collection_id} not found for category {record.slug}"
                )
                stats.dropped += 1
                continue
            rows.append(record.to_row(collection_id))

        self._insert(EntityType.CATEGORY, rows)
        return load_key_set(self.store, EntityType.CATEGORY.value)

    def import_subcollections(self, category_slugs: set[str]) -> dict[int, int]:
        """Insert subcollections under existing categories; return id remapping."""
        self.console.print("[bold]📂 Importing subcollections...[/bold]")
        records = read_jsonl(self.path_for(EntityType.SUBCOLLECTION), SubcollectionRecord)
        stats = self.summary.stats[EntityType.SUBCOLLECTION]
        stats.read = len(records)
        self.console.print(f"   Found {len(records)} subcollections")

        kept = []
        for record in records:
            if record.category_slug not in category_slugs:
                self._warn(
                    f"Category {record.category_slug} not found for subcollection {record.name}"
                )
                stats.dropped += 1
                continue
            kept.append(record)

        self._insert(EntityType.SUBCOLLECTION, [r.to_row() for r in kept])

        key_index = build_key_index(
            self.store, EntityType.SUBCOLLECTION.value, ["name", "category_slug"]
        )
        return build_remapping(
            kept,
            key_index,
            external_id=lambda r: r.external_id,
            natural_key=lambda r: r.natural_key,
            label="Subcollection",
            console=self.console,
        )

    def import_subcategories(self, subcollection_map: dict[int, int]) -> set[str]:
        """Insert subcategories under remapped subcollections; return inserted slugs."""
        self.console.print("[bold]📋 Importing subcategories...[/bold]")
        records = read_jsonl(self.path_for(EntityType.SUBCATEGORY), SubcategoryRecord)
        stats = self.summary.stats[EntityType.SUBCATEGORY]
        stats.read = len(records)
        self.console.print(f"   Found {len(records)} subcategories")

        rows = []
        for record in records:
            subcollection_id = subcollection_map.get(record.subcollection_id)
            if subcollection_id is None:
                self._warn(
                    f"Subcollection ID {record.subcollection_id} not found for subcategory {record.slug}"
                )
                stats.dropped += 1
                continue
            rows.append(record.to_row(subcollection_id))

        self._insert(EntityType.SUBCATEGORY, rows)
        return load_key_set(self.store, EntityType.SUBCATEGORY.value)

    def import_products(self, subcategory_slugs: set[str]) -> None:
        """Stream products from the export and insert those with a known subcategory."""
        self.console.print("[bold]🛍️  Importing products...[/bold]")
        self.console.print("   Streaming products file...")
        records = iter_jsonl(self.path_for(EntityType.PRODUCT), ProductRecord)
        self._insert(
            EntityType.PRODUCT,
            self._resolved_products(records, subcategory_slugs),
            batch_size=self.product_batch_size,
        )

    def _resolved_products(
        self,
        records: Iterator[ProductRecord],
        subcategory_slugs: set[str],
    ) -> Iterator[dict[str, Any]]:
        stats = self.summary.stats[EntityType.PRODUCT]
        for record in records:
            stats.read += 1
            if record.subcategory_slug not in subcategory_slugs:
                self._warn(
                    f"Subcategory {record.subcategory_slug} not found for product {record.slug}"
                )
                stats.dropped += 1
                continue
            yield record.to_row()

    # -----------------------------------------------------------------------
    # Run
    # -----------------------------------------------------------------------

    def run(self) -> ImportSummary:
        """Import every entity in dependency order and report a summary."""
        self.console.print("[bold]🚀 Starting data import...[/bold]")
        self.console.print()
        started = self.clock()

        collection_map = self.import_collections()
        self.console.print()
        category_slugs = self.import_categories(collection_map)
        self.console.print()
        subcollection_map = self.import_subcollections(category_slugs)
        self.console.print()
        subcategory_slugs = self.import_subcategories(subcollection_map)
        self.console.print()
        self.import_products(subcategory_slugs)
        self.console.print()

        self.summary.elapsed_seconds = self.clock() - started
        self.print_summary()
        return self.summary

    def print_summary(self) -> None:
        table = Table(title="Import Summary")
        table.add_column("Entity", style="cyan")
        table.add_column("Read", justify="right")
        table.add_column("Dropped", justify="right", style="yellow")
        table.add_column("Inserted", justify="right", style="green")

        for entity, stats in self.summary.stats.items():
            table.add_row(entity.value, str(stats.read), str(stats.dropped), str(stats.inserted))

        self.console.print(table)
        self.console.print(
            f"[green]✅ Import completed in {self.summary.elapsed_seconds:.2f} seconds![/green]"
        )
