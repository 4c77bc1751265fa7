"""
Cached read queries for catalog pages.

Every query takes primitive arguments (slugs, a search string) and returns
plain dicts or lists of dicts. Results are cached per query key and literal
arguments: listings and counts use the listing window, search uses the
search window. Pass a disabled RevalidatingCache in development.
"""

from __future__ import annotations

import catalog_search
from query_cache import MemoryCacheBackend, RevalidatingCache, cached_query

DEFAULT_LISTING_REVALIDATE = 60 * 60 * 24
DEFAULT_SEARCH_REVALIDATE = 60 * 60 * 2


class CatalogQueries:
    """Read queries over one CatalogStore, cached through one RevalidatingCache."""

    def __init__(
        self,
        store,
        cache: RevalidatingCache | None = None,
        *,
        listing_revalidate: float | None = DEFAULT_LISTING_REVALIDATE,
        search_revalidate: float | None = DEFAULT_SEARCH_REVALIDATE,
    ):
        self.store = store
        self.cache = cache or RevalidatingCache()
        self.revalidate_windows = {
            "listing": listing_revalidate,
            "search": search_revalidate,
        }

    @classmethod
    def from_settings(cls, store, settings) -> CatalogQueries:
        return cls(
            store,
            RevalidatingCache(
                MemoryCacheBackend(settings.cache_max_entries),
                enabled=not settings.is_development,
            ),
            listing_revalidate=settings.listing_revalidate_seconds,
            search_revalidate=settings.search_revalidate_seconds,
        )

    # -----------------------------------------------------------------------
    # Collections and categories
    # -----------------------------------------------------------------------

    def _categories_by_collection(self, collection_ids: list[int]) -> dict[int, list[dict]]:
        grouped: dict[int, list[dict]] = {cid: [] for cid in collection_ids}
        if not collection_ids:
            return grouped
        rows = self.store.query(
            """
            SELECT slug, name, collection_id, image_url
            FROM categories
            WHERE collection_id = ANY(%s)
            ORDER BY slug
            """,
            [collection_ids],
        )
        for row in rows:
            grouped[row["collection_id"]].append(row)
        return grouped

    @cached_query("collections")
    def get_collections(self) -> list[dict]:
        """All collections by name, each with its categories."""
        collections = self.store.query(
            "SELECT id, name, slug FROM collections ORDER BY name"
        )
        categories = self._categories_by_collection([c["id"] for c in collections])
        return [{**c, "categories": categories[c["id"]]} for c in collections]

    @cached_query("collection")
    def get_collection_details(self, collection_slug: str) -> list[dict]:
        """Collections matching a slug, each with its categories."""
        collections = self.store.query(
            "SELECT id, name, slug FROM collections WHERE slug = %s ORDER BY slug",
            [collection_slug],
        )
        categories = self._categories_by_collection([c["id"] for c in collections])
        return [{**c, "categories": categories[c["id"]]} for c in collections]

    @cached_query("category")
    def get_category(self, category_slug: str) -> dict | None:
        """A category with its subcollections and their subcategories."""
        category = self.store.query_one(
            "SELECT slug, name, collection_id, image_url FROM categories WHERE slug = %s",
            [category_slug],
        )
        if category is None:
            return None

        subcollections = self.store.query(
            "SELECT id, name, category_slug FROM subcollections WHERE category_slug = %s ORDER BY id",
            [category_slug],
        )
        subcategories = self.store.query(
            """
            SELECT s.slug, s.name, s.subcollection_id, s.image_url
            FROM subcategories s
            JOIN subcollections sc ON s.subcollection_id = sc.id
            WHERE sc.category_slug = %s
            ORDER BY s.slug
            """,
            [category_slug],
        )
        by_subcollection: dict[int, list[dict]] = {sc["id"]: [] for sc in subcollections}
        for sub in subcategories:
            by_subcollection.setdefault(sub["subcollection_id"], []).append(sub)

        return {
            **category,
            "subcollections": [
                {**sc, "subcategories": by_subcollection[sc["id"]]} for sc in subcollections
            ],
        }

    # -----------------------------------------------------------------------
    # Subcategories and products
    # -----------------------------------------------------------------------

    @cached_query("subcategory")
    def get_subcategory(self, subcategory_slug: str) -> dict | None:
        return self.store.query_one(
            "SELECT slug, name, subcollection_id, image_url FROM subcategories WHERE slug = %s",
            [subcategory_slug],
        )

    @cached_query("subcategory-products")
    def get_products_for_subcategory(self, subcategory_slug: str) -> list[dict]:
        return self.store.query(
            """
            SELECT slug, name, description, price, subcategory_slug, image_url
            FROM products
            WHERE subcategory_slug = %s
            ORDER BY slug
            """,
            [subcategory_slug],
        )

    @cached_query("product")
    def get_product_details(self, product_slug: str) -> dict | None:
        return self.store.query_one(
            """
            SELECT slug, name, description, price, subcategory_slug, image_url
            FROM products
            WHERE slug = %s
            """,
            [product_slug],
        )

    # -----------------------------------------------------------------------
    # Counts
    # -----------------------------------------------------------------------

    @cached_query("total-product-count")
    def get_product_count(self) -> int:
        row = self.store.query_one("SELECT count(*) AS count FROM products")
        return row["count"] if row else 0

    @cached_query("category-product-count")
    def get_category_product_count(self, category_slug: str) -> int:
        # TODO: store category_slug on products to drop the three-way join
        row = self.store.query_one(
            """
            SELECT count(p.slug) AS count
            FROM categories c
            LEFT JOIN subcollections sc ON c.slug = sc.category_slug
            LEFT JOIN subcategories s ON sc.id = s.subcollection_id
            LEFT JOIN products p ON s.slug = p.subcategory_slug
            WHERE c.slug = %s
            """,
            [category_slug],
        )
        return row["count"] if row else 0

    @cached_query("subcategory-product-count")
    def get_subcategory_product_count(self, subcategory_slug: str) -> int:
        row = self.store.query_one(
            "SELECT count(*) AS count FROM products WHERE subcategory_slug = %s",
            [subcategory_slug],
        )
        return row["count"] if row else 0

    # -----------------------------------------------------------------------
    # Search
    # -----------------------------------------------------------------------

    @cached_query("search-results", window="search")
    def get_search_results(self, search_term: str) -> list[dict]:
        return catalog_search.get_search_results(self.store, search_term)
