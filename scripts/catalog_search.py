"""
Product name search for the catalog.

A search string is split into terms and every term must match the product
name (AND). Terms of three or more characters match as a case-insensitive
prefix, which the lower(name) text_pattern_ops index can serve; shorter terms
match anywhere in the name.

Used by:
 - scripts/catalog_queries.py (cached CatalogQueries.get_search_results)
 - api/catalog_api.py (GET /search)
"""

from __future__ import annotations

from dataclasses import dataclass

from psycopg import sql

SEARCH_RESULT_LIMIT = 5
PREFIX_MIN_LENGTH = 3


@dataclass(frozen=True)
class TermCondition:
    """One search term and the LIKE pattern it compiles to."""

    term: str
    pattern: str
    prefix: bool


def split_terms(raw: str) -> list[str]:
    """Trim and split on whitespace, dropping empty terms."""
    return raw.strip().split()


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def term_pattern(term: str) -> TermCondition:
    """Compile a term to a lower-cased prefix or substring pattern."""
    escaped = _escape_like(term.lower())
    if len(term) >= PREFIX_MIN_LENGTH:
        return TermCondition(term=term, pattern=f"{escaped}%", prefix=True)
    return TermCondition(term=term, pattern=f"%{escaped}%", prefix=False)


def build_name_predicate(
    terms: list[str],
    column: sql.Composable = sql.SQL("lower(p.name)"),
) -> tuple[sql.Composable, list[str]]:
    """
    Build the WHERE predicate and params for a list of terms.

    Returns:
        (predicate, params) with one LIKE condition per term joined by AND
    """
    if not terms:
        raise ValueError("at least one search term is required")

    conditions = [term_pattern(term) for term in terms]
    predicate = sql.SQL(" AND ").join(
        sql.SQL("{column} LIKE %s").format(column=column) for _ in conditions
    )
    return predicate, [c.pattern for c in conditions]


def get_search_results(store, raw: str, *, limit: int = SEARCH_RESULT_LIMIT) -> list[dict]:
    """
    Search products by name and join each hit to its ancestors.

    Returns dicts with: product, subcategory, subcollection, category.
    A blank search returns [] without touching the store.
    """
    terms = split_terms(raw)
    if not terms:
        return []

    predicate, params = build_name_predicate(terms)
    statement = sql.SQL(
        """
        SELECT
            to_jsonb(p) AS product,
            to_jsonb(s) AS subcategory,
            to_jsonb(sc) AS subcollection,
            to_jsonb(c) AS category
        FROM products p
        JOIN subcategories s ON p.subcategory_slug = s.slug
        JOIN subcollections sc ON s.subcollection_id = sc.id
        JOIN categories c ON sc.category_slug = c.slug
        WHERE {predicate}
        LIMIT %s
        """
    ).format(predicate=predicate)

    return [
        {
            "product": row["product"],
            "subcategory": row["subcategory"],
            "subcollection": row["subcollection"],
            "category": row["category"],
        }
        for row in store.query(statement, [*params, limit])
    ]
