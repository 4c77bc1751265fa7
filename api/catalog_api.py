"""
Catalog API: browsing, search, session and image prefetch.

Local FastAPI app serving the product catalog from the catalog database.

Usage:
 uvicorn api.catalog_api:app --port 8102 --reload

Endpoints:
 GET /health                                Health check
 GET /collections                           Collections with their categories
 GET /collections/{slug}                    One collection with its categories
 GET /categories/{slug}                     Category with subcollections/subcategories
 GET /categories/{slug}/product-count       Products under a category
 GET /subcategories/{slug}                  One subcategory
 GET /subcategories/{slug}/products         Products in a subcategory
 GET /subcategories/{slug}/product-count    Products in a subcategory (count)
 GET /products/count                        Total product count
 GET /products/{slug}                       Product details
 GET /search?q=                             Product name search (max 5 hits)
 GET /me                                    User for the session cookie
 GET /api/prefetch-images/{path}            Images on a rendered page
"""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

import httpx
from fastapi import APIRouter, Cookie, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

# Shared utilities (after sys.path setup)
sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))
import image_prefetch as _prefetch  # noqa: E402
from db_utils import CatalogStore  # noqa: E402
from catalog_queries import CatalogQueries  # noqa: E402
from session_auth import SESSION_COOKIE, SignedTokenVerifier, TokenVerifier, get_user  # noqa: E402
from catalog_settings import Settings, load_settings  # noqa: E402

PREFETCH_CACHE_CONTROL = "public, max-age=3600"


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class Category(BaseModel):
    slug: str
    name: str
    collection_id: int
    image_url: str | None = None


class Collection(BaseModel):
    id: int
    name: str
    slug: str
    categories: list[Category] = Field(default_factory=list)


class Subcategory(BaseModel):
    slug: str
    name: str
    subcollection_id: int
    image_url: str | None = None


class Subcollection(BaseModel):
    id: int
    name: str
    category_slug: str


class SubcollectionWithSubcategories(Subcollection):
    subcategories: list[Subcategory] = Field(default_factory=list)


class CategoryDetail(Category):
    subcollections: list[SubcollectionWithSubcategories] = Field(default_factory=list)


class Product(BaseModel):
    slug: str
    name: str
    description: str
    price: float
    subcategory_slug: str
    image_url: str | None = None


class SearchHit(BaseModel):
    product: Product
    subcategory: Subcategory
    subcollection: Subcollection
    category: Category


class SearchResponse(BaseModel):
    query: str
    count: int
    results: list[SearchHit]


class CountResponse(BaseModel):
    count: int


class User(BaseModel):
    id: int
    username: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PrefetchImage(BaseModel):
    src: str
    alt: str | None = None
    srcset: str | None = None
    sizes: str | None = None
    loading: str | None = None


class PrefetchResponse(BaseModel):
    images: list[PrefetchImage]


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    state = app.state
    owned = []

    if state.settings is None:
        state.settings = load_settings()
    if state.store is None:
        state.store = CatalogStore.connect(state.settings)
        owned.append(state.store)
    if state.http_client is None:
        state.http_client = httpx.Client(timeout=_prefetch.FETCH_TIMEOUT, follow_redirects=True)
        owned.append(state.http_client)
    if state.verifier is None and state.settings.session_secret:
        state.verifier = SignedTokenVerifier(state.settings.session_secret)

    state.queries = CatalogQueries.from_settings(state.store, state.settings)
    yield
    for resource in owned:
        resource.close()


def create_app(
    *,
    settings: Settings | None = None,
    store=None,
    http_client: httpx.Client | None = None,
    verifier: TokenVerifier | None = None,
) -> FastAPI:
    """Build the app; anything not injected is created in the lifespan."""
    app = FastAPI(
        title="Catalog API",
        description="Product catalog browsing, search and image prefetch",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.http_client = http_client
    app.state.verifier = verifier
    app.state.queries = None
    app.include_router(router)
    return app


def get_queries(request: Request) -> CatalogQueries:
    return request.app.state.queries


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/collections", response_model=list[Collection])
def collections(queries: CatalogQueries = Depends(get_queries)):
    """Collections ordered by name, each with its categories."""
    return queries.get_collections()


@router.get("/collections/{slug}", response_model=list[Collection])
def collection_details(slug: str, queries: CatalogQueries = Depends(get_queries)):
    return queries.get_collection_details(slug)


@router.get("/categories/{slug}", response_model=CategoryDetail)
def category(slug: str, queries: CatalogQueries = Depends(get_queries)):
    result = queries.get_category(slug)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Category not found: {slug}")
    return result


@router.get("/categories/{slug}/product-count", response_model=CountResponse)
def category_product_count(slug: str, queries: CatalogQueries = Depends(get_queries)):
    return CountResponse(count=queries.get_category_product_count(slug))


@router.get("/subcategories/{slug}", response_model=Subcategory)
def subcategory(slug: str, queries: CatalogQueries = Depends(get_queries)):
    result = queries.get_subcategory(slug)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Subcategory not found: {slug}")
    return result


@router.get("/subcategories/{slug}/products", response_model=list[Product])
def subcategory_products(slug: str, queries: CatalogQueries = Depends(get_queries)):
    return queries.get_products_for_subcategory(slug)


@router.get("/subcategories/{slug}/product-count", response_model=CountResponse)
def subcategory_product_count(slug: str, queries: CatalogQueries = Depends(get_queries)):
    return CountResponse(count=queries.get_subcategory_product_count(slug))


@router.get("/products/count", response_model=CountResponse)
def product_count(queries: CatalogQueries = Depends(get_queries)):
    return CountResponse(count=queries.get_product_count())


@router.get("/products/{slug}", response_model=Product)
def product_details(slug: str, queries: CatalogQueries = Depends(get_queries)):
    result = queries.get_product_details(slug)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Product not found: {slug}")
    return result


@router.get("/search", response_model=SearchResponse)
def search(
    q: str = Query("", description="Space-separated search terms"),
    queries: CatalogQueries = Depends(get_queries),
):
    """Products whose name matches every term, joined to their ancestors."""
    results = queries.get_search_results(q)
    return SearchResponse(query=q, count=len(results), results=results)


@router.get("/me", response_model=User | None)
def me(
    request: Request,
    session: str | None = Cookie(None, alias=SESSION_COOKIE),
):
    verifier = request.app.state.verifier
    if verifier is None:
        return None
    return get_user(request.app.state.store, session, verifier)


@router.get("/api/prefetch-images/{rest:path}", response_model=PrefetchResponse)
def prefetch_images(rest: str, request: Request):
    """Images under <main> on the rendered page at `rest`."""
    result = _prefetch.prefetch_images(
        request.app.state.http_client, request.app.state.settings, rest
    )
    headers = {"Cache-Control": PREFETCH_CACHE_CONTROL} if result.cacheable else None
    return JSONResponse(
        status_code=result.status, content={"images": result.images}, headers=headers
    )


app = create_app()
