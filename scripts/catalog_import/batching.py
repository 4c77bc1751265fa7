"""Fixed-size batch inserts with progress reporting."""

from __future__ import annotations

from dataclasses import dataclass
from itertools import islice
from typing import Any, Iterable, Iterator, Sized

from rich.console import Console

DEFAULT_BATCH_SIZE = 1000


@dataclass
class BatchResult:
    """Outcome of one batched insert."""

    batches: int = 0
    submitted: int = 0  # rows sent to the store
    inserted: int = 0  # rows the store accepted (conflicts excluded)


def chunked(rows: Iterable[Any], size: int) -> Iterator[list[Any]]:
    """Split rows into contiguous lists of at most `size` items."""
    if size < 1:
        raise ValueError(f"batch size must be positive, got {size}")
    it = iter(rows)
    while chunk := list(islice(it, size)):
        yield chunk


def insert_in_batches(
    store,
    table: str,
    rows: Iterable[dict[str, Any]],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    label: str | None = None,
    console: Console | None = None,
) -> BatchResult:
    """
    Insert rows into `table` one chunk at a time, in order.

    Each chunk is a single atomic write. A failing chunk propagates its error;
    chunks already written stay in the store.

    Args:
        store: CatalogStore (or anything with insert_rows)
        table: Target table
        rows: Rows as dicts; a list or a lazily consumed iterator
        batch_size: Rows per chunk
        label: Noun used in progress lines (defaults to the table name)
        console: Where progress goes

    Returns:
        BatchResult with chunk and row counts
    """
    if batch_size < 1:
        raise ValueError(f"batch size must be positive, got {batch_size}")

    console = console or Console()
    label = label or table
    total = len(rows) if isinstance(rows, Sized) else None
    total_batches = -(-total // batch_size) if total is not None else None

    result = BatchResult()
    for chunk in chunked(rows, batch_size):
        result.inserted += store.insert_rows(table, chunk)
        result.batches += 1
        result.submitted += len(chunk)

        if total:
            percent = result.submitted / total * 100
            console.print(
                f"   Inserted batch {result.batches}/{total_batches} "
                f"({result.submitted}/{total} {label}, {percent:.1f}%)"
            )
        else:
            console.print(
                f"   Inserted batch {result.batches} ({result.submitted} {label})"
            )

    return result
