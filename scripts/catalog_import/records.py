"""
Typed records for the catalog export and the JSON-lines readers that load them.

Each export file holds one JSON object per line. Export bookkeeping fields
(_id, _creationTime) are ignored.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, TypeVar

from catalog_settings import CatalogError


class EntityType(str, Enum):
    """Catalog entities, in import order. Values are table names."""

    COLLECTION = "collections"
    CATEGORY = "categories"
    SUBCOLLECTION = "subcollections"
    SUBCATEGORY = "subcategories"
    PRODUCT = "products"


class RecordReadError(CatalogError):
    """An export line could not be parsed into a record."""

    def __init__(self, path: Path, line_no: int, reason: str):
        self.path = path
        self.line_no = line_no
        super().__init__(f"{path}:{line_no}: {reason}")


def _optional_url(value: Any) -> str | None:
    return value or None


@dataclass
class CollectionRecord:
    external_id: int
    name: str
    slug: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CollectionRecord:
        return cls(
            external_id=int(data["external_id"]),
            name=data["name"],
            slug=data["slug"],
        )

    def to_row(self) -> dict[str, Any]:
        return {"name": self.name, "slug": self.slug}


@dataclass
class CategoryRecord:
    collection_id: int  # external id of the parent collection
    name: str
    slug: str
    image_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CategoryRecord:
        return cls(
            collection_id=int(data["collection_id"]),
            name=data["name"],
            slug=data["slug"],
            image_url=_optional_url(data.get("image_url")),
        )

    def to_row(self, collection_id: int) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "name": self.name,
            "collection_id": collection_id,
            "image_url": self.image_url,
        }


@dataclass
class SubcollectionRecord:
    external_id: int
    category_slug: str
    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SubcollectionRecord:
        return cls(
            external_id=int(data["external_id"]),
            category_slug=data["category_slug"],
            name=data["name"],
        )

    @property
    def natural_key(self) -> tuple[str, str]:
        # Names repeat across categories, so the key is composite.
        return (self.name, self.category_slug)

    def to_row(self) -> dict[str, Any]:
        return {"name": self.name, "category_slug": self.category_slug}


@dataclass
class SubcategoryRecord:
    subcollection_id: int  # external id of the parent subcollection
    name: str
    slug: str
    image_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SubcategoryRecord:
        return cls(
            subcollection_id=int(data["subcollection_id"]),
            name=data["name"],
            slug=data["slug"],
            image_url=_optional_url(data.get("image_url")),
        )

    def to_row(self, subcollection_id: int) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "name": self.name,
            "subcollection_id": subcollection_id,
            "image_url": self.image_url,
        }


@dataclass
class ProductRecord:
    name: str
    slug: str
    description: str
    price: float
    subcategory_slug: str
    image_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProductRecord:
        return cls(
            name=data["name"],
            slug=data["slug"],
            description=data["description"],
            price=float(data["price"]),
            subcategory_slug=data["subcategory_slug"],
            image_url=_optional_url(data.get("image_url")),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "subcategory_slug": self.subcategory_slug,
            "image_url": self.image_url,
        }


R = TypeVar(
    "R",
    CollectionRecord,
    CategoryRecord,
    SubcollectionRecord,
    SubcategoryRecord,
    ProductRecord,
)


def _parse_line(path: Path, line_no: int, line: str, record_type: type[R]) -> R:
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise RecordReadError(path, line_no, f"malformed JSON ({e.msg})") from e
    if not isinstance(data, dict):
        raise RecordReadError(path, line_no, "expected a JSON object")
    try:
        return record_type.from_dict(data)
    except KeyError as e:
        raise RecordReadError(path, line_no, f"missing field {e.args[0]!r}") from e
    except (TypeError, ValueError) as e:
        raise RecordReadError(path, line_no, f"invalid value ({e})") from e


def read_jsonl(path: Path, record_type: type[R]) -> list[R]:
    """
    Load a whole JSON-lines file into records.

    Blank lines are skipped. Any bad line raises RecordReadError.
    """
    content = Path(path).read_text(encoding="utf-8")
    return [
        _parse_line(path, line_no, line, record_type)
        for line_no, line in enumerate(content.split("\n"), start=1)
        if line.strip()
    ]


def iter_jsonl(path: Path, record_type: type[R]) -> Iterator[R]:
    """
    Yield records one line at a time without reading the file up front.

    Used for products, the largest export.
    """
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            if line.strip():
                yield _parse_line(path, line_no, line, record_type)
