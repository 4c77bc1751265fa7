"""
Translation from export ids to store-assigned ids.

External ids in the export are only meaningful inside one export, so after a
parent table is inserted its rows are read back and matched to the source
records by natural key (slug, or a composite when the slug is absent).
"""

from __future__ import annotations

from typing import Any, Callable, Hashable, Iterable, Sequence

from rich.console import Console


def build_key_index(
    store,
    table: str,
    key_columns: Sequence[str],
    id_column: str = "id",
) -> dict[Hashable, int]:
    """
    Map each inserted row's natural key to its internal id.

    A single key column maps by its value; several map by a tuple of values.
    """
    rows = store.fetch_rows(table, [id_column, *key_columns])
    index: dict[Hashable, int] = {}
    for row in rows:
        if len(key_columns) == 1:
            key = row[key_columns[0]]
        else:
            key = tuple(row[c] for c in key_columns)
        index[key] = row[id_column]
    return index


def build_remapping(
    records: Iterable[Any],
    key_index: dict[Hashable, int],
    *,
    external_id: Callable[[Any], int],
    natural_key: Callable[[Any], Hashable],
    label: str,
    console: Console | None = None,
) -> dict[int, int]:
    """
    Build external id -> internal id for the given source records.

    Records whose natural key was not inserted get a warning and no entry;
    dependents of those records are dropped downstream.
    """
    console = console or Console()
    remapping: dict[int, int] = {}
    for record in records:
        key = natural_key(record)
        internal_id = key_index.get(key)
        if internal_id is None:
            shown = "::".join(key) if isinstance(key, tuple) else key
            console.print(
                f"   [yellow]Warning: {label} with key {shown} not found after insert[/yellow]"
            )
            continue
        remapping[external_id(record)] = internal_id
    return remapping


def load_key_set(store, table: str, column: str = "slug") -> set[Hashable]:
    """Natural keys present in `table`, for parents referenced by slug."""
    return {row[column] for row in store.fetch_rows(table, [column])}
