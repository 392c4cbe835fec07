"""Open Food Facts lookup and normalization into catalog products."""

from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

import httpx

from .db import CatalogDB
from .errors import ConflictExists, UpstreamError
from .models import UNKNOWN, UNKNOWN_PRODUCT, Product, ProductStatus, split_ingredients, utcnow

logger = logging.getLogger(__name__)

_NAME_FIELDS = ("product_name", "product_name_en", "name")
_INGREDIENT_FIELDS = (
    "ingredients_text_with_allergens",
    "ingredients_text",
    "ingredients_text_en",
    "ingredients_text_debug",
)
_PICTURE_FIELDS = ("image_front_url", "image_url", "image_small_url")

_TAG_RE = re.compile(r"<[^>]+>")


class ExternalCatalog(ABC):
    """A third-party barcode → product attributes source."""

    @abstractmethod
    async def lookup(self, barcode: str) -> dict[str, Any] | None:
        """Return the raw product record, or None if the catalog has no entry.

        Raises:
            UpstreamError: If the catalog could not be reached or answered
                with something other than a product or a clean miss.
        """
        ...


class OpenFoodFactsClient(ExternalCatalog):
    """Async client for the Open Food Facts product API."""

    def __init__(
        self,
        base_url: str = "https://world.openfoodfacts.org/api/v3",
        *,
        user_agent: str = "glutenpeek/0.1",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": user_agent, "Accept": "application/json"},
            follow_redirects=True,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> OpenFoodFactsClient:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def lookup(self, barcode: str) -> dict[str, Any] | None:
        url = f"{self._base_url}/product/{barcode}.json"
        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Open Food Facts timed out for {barcode}") from e
        except httpx.RequestError as e:
            raise UpstreamError(f"Open Food Facts unreachable: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise UpstreamError(
                f"Open Food Facts error for {barcode}: HTTP {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(f"Open Food Facts returned invalid JSON for {barcode}") from e
        if not isinstance(data, dict):
            raise UpstreamError(f"Open Food Facts returned unexpected payload for {barcode}")

        # v0/v2 use status 0/1, v3 uses "success"/"failure"
        status = data.get("status")
        product = data.get("product")
        if status in (0, "0", "failure") and not product:
            return None
        if not isinstance(product, dict) or not product:
            return None
        return product


def _first_nonempty(raw: dict[str, Any], fields: tuple[str, ...]) -> str:
    for name in fields:
        value = raw.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def normalize_product(
    barcode: str, raw: dict[str, Any], *, now: datetime | None = None
) -> Product:
    """Build a new catalog Product from a raw external record.

    Each field falls back through its preference list; ingredient text is
    stripped of allergen markup and split into a list.
    """
    name = _first_nonempty(raw, _NAME_FIELDS) or UNKNOWN_PRODUCT

    ingredients_text = _first_nonempty(raw, _INGREDIENT_FIELDS)
    if ingredients_text:
        ingredients = split_ingredients(_TAG_RE.sub("", ingredients_text).replace("_", ""))
    else:
        ingredients = split_ingredients(raw.get("ingredients") or [])

    return Product(
        barcode=barcode,
        name=name,
        ingredients=ingredients,
        picture_url=_first_nonempty(raw, _PICTURE_FIELDS),
        status=ProductStatus(
            label=UNKNOWN,
            explanation="Not yet classified",
            last_evaluated_at=now or utcnow(),
        ),
    )


@dataclass
class FallbackResult:
    product: Product
    created: bool  # False when a concurrent writer created it first


class ExternalCatalogFallback:
    """Resolves a barcode through the external catalog and stores the result."""

    def __init__(
        self,
        catalog: ExternalCatalog,
        store: CatalogDB,
        *,
        timeout: float = 10.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._timeout = timeout
        self._clock = clock

    async def fetch_and_store(self, barcode: str) -> FallbackResult | None:
        """Look the barcode up externally and create the catalog record.

        Returns:
            FallbackResult, or None if the external catalog has no entry.

        Raises:
            UpstreamError: If the external catalog failed; this is not a miss.
            CatalogError: If the local catalog could not be written.
        """
        try:
            raw = await asyncio.wait_for(self._catalog.lookup(barcode), self._timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamError(f"External catalog lookup timed out for {barcode}") from e

        if raw is None:
            logger.info("Barcode %s not found in external catalog", barcode)
            return None

        candidate = normalize_product(barcode, raw, now=self._clock())
        try:
            product = self._store.create(candidate, source="external")
        except ConflictExists:
            existing = self._store.get(barcode)
            if existing is None:
                raise
            logger.info("Product %s was created concurrently; using stored record", barcode)
            return FallbackResult(product=existing, created=False)
        return FallbackResult(product=product, created=True)
