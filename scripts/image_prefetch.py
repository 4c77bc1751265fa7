"""
Image prefetch for catalog pages.

Fetches a rendered page from the site itself and lists the images inside its
<main> element so the client can warm them before navigation. Failures never
surface as errors: the caller always gets an image list, empty if need be.
"""

from __future__ import annotations

from typing import NamedTuple

import httpx
from bs4 import BeautifulSoup
from rich.console import Console

from catalog_settings import Settings

USER_AGENT = "Catalog Prefetch"
DEV_HOST = "localhost:3000"
FETCH_TIMEOUT = 10.0

console = Console(stderr=True)


class PrefetchResult(NamedTuple):
    status: int
    images: list[dict]
    # False when the page could not be fetched or parsed
    cacheable: bool = False


def resolve_host(settings: Settings) -> str | None:
    """Pick the host pages are fetched from."""
    if settings.is_development:
        return DEV_HOST
    if settings.public_host:
        return settings.public_host
    if settings.deploy_env == "production" and settings.production_host:
        return settings.production_host
    return settings.branch_host or None


def extract_images(html: str) -> list[dict]:
    """
    Collect image attributes for every <img> under <main>.

    Returns dicts with: src, alt, srcset, sizes, loading. Images without a
    src are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    images = []
    for img in soup.select("main img"):
        src = img.get("src")
        if not src:
            continue
        images.append(
            {
                "src": src,
                "alt": img.get("alt"),
                # html.parser lowercases attribute names; srcSet kept for other parsers
                "srcset": img.get("srcset") or img.get("srcSet"),
                "sizes": img.get("sizes"),
                "loading": img.get("loading"),
            }
        )
    return images


def fetch_page_images(client: httpx.Client, url: str) -> list[dict] | None:
    """Fetch one page and extract its images; None on any failure."""
    try:
        response = client.get(url, headers={"User-Agent": USER_AGENT})
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        console.print(f"[yellow]Warning: Failed to fetch page for prefetch: {e}[/yellow]")
        return None

    if not response.is_success:
        return None

    try:
        return extract_images(response.text)
    except Exception as e:
        console.print(f"[yellow]Warning: Failed to parse page for prefetch: {e}[/yellow]")
        return None


def prefetch_images(client: httpx.Client, settings: Settings, href: str) -> PrefetchResult:
    """
    Resolve the page URL for `href` and list the images on it.

    Status is 400 for an empty path and 500 when no host can be resolved;
    every fetch or parse problem still returns 200 with an empty list. Only
    a page that was actually fetched and parsed is marked cacheable.
    """
    scheme = "http" if settings.is_development else "https"
    host = resolve_host(settings)
    if not host:
        return PrefetchResult(500, [])

    href = href.strip("/")
    if not href:
        return PrefetchResult(400, [])

    images = fetch_page_images(client, f"{scheme}://{host}/{href}")
    if images is None:
        return PrefetchResult(200, [])
    return PrefetchResult(200, images, cacheable=True)
