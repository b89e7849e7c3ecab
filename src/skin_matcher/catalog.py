"""Catalog providers for the skin matcher.

The engine always scores the full in-stock catalog. Providers fetch it
from a local JSON file, an HTTPS endpoint, or memory, and return a flat
list of ``ProductRecord``.

Accepted catalog shapes:

- a JSON array of product objects
- an object with a ``products`` array
- an object mapping category names to product arrays; each product is
  annotated with the category it was listed under
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol, Union
from urllib.parse import urlparse

import requests
from pydantic import ValidationError

from .schema import ProductCategory, ProductRecord

logger = logging.getLogger(__name__)

# ── Limits ──────────────────────────────────────────────────────────────────
MAX_CATALOG_BYTES = 20 * 1024 * 1024  # 20 MB
MAX_PRODUCT_COUNT = 5000
REQUEST_TIMEOUT = (10, 30)  # (connect, read) seconds

KNOWN_CATEGORIES = frozenset(c.value for c in ProductCategory)


class CatalogLoadError(Exception):
    """Raised when a product catalog cannot be loaded."""


class CatalogProvider(Protocol):
    """Source of the full in-stock catalog."""

    async def fetch_all(self) -> list[ProductRecord]:
        ...


def _iter_entries(data: Any) -> list[tuple[Any, Optional[str]]]:
    """Flatten the accepted catalog shapes into (entry, category) pairs."""
    if isinstance(data, list):
        return [(entry, None) for entry in data]

    if isinstance(data, dict):
        if "products" in data:
            products = data["products"]
            if not isinstance(products, list):
                raise CatalogLoadError("'products' must be a JSON array.")
            return [(entry, None) for entry in products]

        entries = []
        for category, products in data.items():
            if not isinstance(products, list):
                raise CatalogLoadError(
                    f"Category '{category}' must map to a JSON array of products."
                )
            entries.extend((entry, category) for entry in products)
        return entries

    raise CatalogLoadError(
        "Catalog must be a JSON array of products or an object keyed by category."
    )


def parse_catalog(data: Any) -> list[ProductRecord]:
    """Build product records from decoded catalog JSON.

    Out-of-stock products are dropped. Entries that are not objects, or
    that cannot be modelled at all, are skipped with a warning; missing
    fields are tolerated and handled by the scorer.
    """
    entries = _iter_entries(data)

    if len(entries) > MAX_PRODUCT_COUNT:
        raise CatalogLoadError(
            f"Catalog contains {len(entries)} products, which exceeds "
            f"the maximum of {MAX_PRODUCT_COUNT}."
        )

    products = []
    for i, (entry, category) in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning("Skipping catalog entry %d: not a JSON object", i)
            continue
        if category is not None:
            entry = {**entry, "category": category}
        try:
            product = ProductRecord.model_validate(entry)
        except ValidationError as exc:
            logger.warning("Skipping catalog entry %d: %s", i, exc.errors()[:1])
            continue
        if not product.in_stock:
            continue
        products.append(product)

    return products


def load_catalog_file(path: Union[str, Path]) -> list[ProductRecord]:
    """Read and parse a catalog JSON file."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise CatalogLoadError(f"Catalog file not found: {path}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CatalogLoadError(f"Invalid JSON in {path}: {e}") from e

    products = parse_catalog(data)
    logger.info("Loaded %d in-stock products from %s", len(products), path)
    return products


def validate_catalog(path: Union[str, Path]) -> tuple[bool, list[str]]:
    """Check a catalog file for problems that affect recommendations.

    Returns:
        Tuple of (is_valid, issues). Warnings about individual products are
        reported as issues but only load failures or an empty catalog make
        the catalog invalid.
    """
    try:
        products = load_catalog_file(path)
    except CatalogLoadError as e:
        return False, [str(e)]

    issues = []
    if not products:
        return False, ["Catalog contains no in-stock products"]

    for product in products:
        label = product.id or product.title or "<unnamed>"
        if not product.is_identifiable:
            issues.append(f"{label}: missing id or title (will never be recommended)")
        if product.category not in KNOWN_CATEGORIES:
            issues.append(f"{label}: unknown category '{product.category}'")
        if not product.description and not product.short_description:
            issues.append(f"{label}: no description text to match keywords against")

    return True, issues


# =============================================================================
# Providers
# =============================================================================


class InMemoryCatalogProvider:
    """Serves a fixed list of products."""

    def __init__(self, products: list[Union[ProductRecord, dict[str, Any]]]):
        self.products = [
            p if isinstance(p, ProductRecord) else ProductRecord.model_validate(p)
            for p in products
        ]

    async def fetch_all(self) -> list[ProductRecord]:
        return [p for p in self.products if p.in_stock]


class JsonFileCatalogProvider:
    """Reads the catalog from a JSON file on every fetch."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    async def fetch_all(self) -> list[ProductRecord]:
        return await asyncio.to_thread(load_catalog_file, self.path)


class HttpCatalogProvider:
    """Downloads the catalog from an HTTPS endpoint.

    Protections:
    - HTTPS only, optional hostname allowlist (suffix matching)
    - Connection and read timeouts, no redirects
    - Response size cap
    - Content-Type verification
    """

    def __init__(
        self,
        url: str,
        *,
        allowed_domains: Optional[frozenset[str]] = None,
        timeout: tuple[int, int] = REQUEST_TIMEOUT,
        max_bytes: int = MAX_CATALOG_BYTES,
    ):
        self.url = url
        self.allowed_domains = allowed_domains
        self.timeout = timeout
        self.max_bytes = max_bytes

    async def fetch_all(self) -> list[ProductRecord]:
        return await asyncio.to_thread(self.download)

    def _validate_url(self) -> None:
        parsed = urlparse(self.url)
        if parsed.scheme.lower() != "https":
            raise CatalogLoadError("Invalid URL: URL scheme must be HTTPS")
        hostname = (parsed.hostname or "").lower()
        if not hostname:
            raise CatalogLoadError("Invalid URL: URL must have a hostname")
        if self.allowed_domains is not None and not any(
            hostname == d or hostname.endswith("." + d) for d in self.allowed_domains
        ):
            raise CatalogLoadError(f"Invalid URL: domain '{hostname}' is not in the allowed list")

    def download(self) -> list[ProductRecord]:
        """Fetch and parse the remote catalog (blocking)."""
        self._validate_url()

        try:
            resp = requests.get(
                self.url,
                timeout=self.timeout,
                stream=True,
                allow_redirects=False,
                headers={"Accept": "application/json"},
            )
        except requests.ConnectionError as e:
            raise CatalogLoadError("Could not connect to the catalog URL.") from e
        except requests.Timeout as e:
            raise CatalogLoadError("Request timed out while downloading the catalog.") from e
        except requests.RequestException as e:
            raise CatalogLoadError(f"Network error: {e}") from e

        if 300 <= resp.status_code < 400:
            raise CatalogLoadError("Catalog URL returned a redirect, which is not followed.")
        if resp.status_code != 200:
            raise CatalogLoadError(f"Catalog server returned HTTP {resp.status_code}.")

        content_type = resp.headers.get("Content-Type", "")
        if content_type and "json" not in content_type and "octet-stream" not in content_type:
            raise CatalogLoadError(
                f"Unexpected Content-Type '{content_type}'. Expected JSON."
            )

        chunks: list[bytes] = []
        received = 0
        for chunk in resp.iter_content(chunk_size=64 * 1024):
            received += len(chunk)
            if received > self.max_bytes:
                raise CatalogLoadError(
                    f"Catalog exceeds the maximum allowed size of "
                    f"{self.max_bytes // (1024 * 1024)} MB."
                )
            chunks.append(chunk)

        raw = b"".join(chunks)
        if not raw:
            raise CatalogLoadError("Downloaded catalog is empty.")

        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CatalogLoadError(f"Downloaded catalog is not valid JSON: {e}") from e

        products = parse_catalog(data)
        logger.info("Fetched %d in-stock products from %s", len(products), self.url)
        return products
