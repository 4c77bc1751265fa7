"""
Batch import of the catalog export into the relational store.

Usage:
    from catalog_import import CatalogImporter

    with CatalogStore.connect(settings) as store:
        summary = CatalogImporter(store, settings.import_data_dir).run()
"""

from .batching import BatchResult, insert_in_batches
from .orchestrator import CatalogImporter, EntityStats, ImportSummary
from .records import EntityType, RecordReadError, iter_jsonl, read_jsonl
from .remap import build_key_index, build_remapping, load_key_set

__all__ = [
    "BatchResult",
    "CatalogImporter",
    "EntityStats",
    "EntityType",
    "ImportSummary",
    "RecordReadError",
    "build_key_index",
    "build_remapping",
    "insert_in_batches",
    "iter_jsonl",
    "load_key_set",
    "read_jsonl",
]
