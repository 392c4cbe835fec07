"""Scan resolution cascade: local catalog, then external catalog, then community."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from .db import CatalogDB, ScanJournal
from .errors import CatalogError, UpstreamError
from .external import ExternalCatalogFallback
from .models import Product, utcnow
from .outcome import (
    Failed,
    FoundExternal,
    FoundLocal,
    NeedsCommunityInput,
    ResolutionOutcome,
    is_resolved,
)

logger = logging.getLogger(__name__)


class ScanResolver:
    """Resolves a barcode to a product and records the scan.

    ``on_resolved`` is called with the barcode after the scan is recorded.
    It must not block; the service wires it to the reclassification
    queue. Exceptions from it are logged and never reach the caller.
    """

    def __init__(
        self,
        store: CatalogDB,
        fallback: ExternalCatalogFallback,
        journal: ScanJournal,
        *,
        on_resolved: Callable[[str], object] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._fallback = fallback
        self._journal = journal
        self._on_resolved = on_resolved
        self._clock = clock

    async def resolve(self, barcode: str) -> ResolutionOutcome:
        """Run the cascade without recording a scan."""
        barcode = (barcode or "").strip()
        if not barcode:
            return Failed("A barcode is required", retryable=False)

        try:
            product = self._store.get(barcode)
        except CatalogError as e:
            logger.error("Local catalog lookup failed for %s: %s", barcode, e)
            return Failed(f"Local catalog unavailable: {e}", error=e)
        if product is not None:
            return FoundLocal(product)

        try:
            result = await self._fallback.fetch_and_store(barcode)
        except UpstreamError as e:
            logger.warning("External catalog failed for %s: %s", barcode, e)
            return Failed(f"External catalog unavailable: {e}", error=e)
        except CatalogError as e:
            logger.error("Could not store external product %s: %s", barcode, e)
            return Failed(f"Local catalog unavailable: {e}", error=e)

        if result is None:
            return NeedsCommunityInput(barcode)
        if result.created:
            logger.info("Added %s (%s) from external catalog", barcode, result.product.name)
            return FoundExternal(result.product)
        return FoundLocal(result.product)

    async def resolve_and_record_scan(
        self,
        barcode: str,
        user_id: str,
        timestamp: datetime | None = None,
    ) -> ResolutionOutcome:
        """Resolve a barcode and append a scan event for the user.

        A scan event is written only for FoundLocal and FoundExternal.
        The staleness check is handed off after the event is stored and
        is never awaited here.
        """
        outcome = await self.resolve(barcode)
        if not is_resolved(outcome):
            return outcome

        product: Product = outcome.product
        try:
            self._journal.record_scan(user_id, product.barcode, timestamp or self._clock())
        except CatalogError as e:
            logger.error("Failed to record scan of %s for %s: %s", product.barcode, user_id, e)
            return Failed(f"Could not record scan: {e}", error=e)

        self._schedule_reclassification(product.barcode)
        return outcome

    def _schedule_reclassification(self, barcode: str) -> None:
        if self._on_resolved is None:
            return
        try:
            self._on_resolved(barcode)
        except Exception:
            logger.exception("Could not queue staleness check for %s", barcode)
