"""Staleness-driven reclassification of a product's gluten status."""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from .ai import Classifier
from .db import StatusDB
from .errors import ClassificationError, ProductNotFound
from .models import ProductStatus, utcnow
from .notify import Notifier, StatusChange

logger = logging.getLogger(__name__)


class ReclassifyState(enum.Enum):
    FRESH = "fresh"
    UNCHANGED = "unchanged"
    UPDATED = "updated"


@dataclass
class ReclassificationResult:
    barcode: str
    state: ReclassifyState
    previous_label: str | None = None
    new_label: str | None = None
    error: Exception | None = None


class StalenessClassifier:
    """Re-runs the AI classifier on products whose status is out of date.

    A product is stale once ``now - last_evaluated_at`` reaches
    ``stale_after``. A failed classification never touches the stored
    status. A confirmed label only refreshes ``last_evaluated_at``; a new
    label overwrites the status and triggers a notification.
    """

    def __init__(
        self,
        status_db: StatusDB,
        classifier: Classifier,
        notifier: Notifier | None = None,
        *,
        stale_after: timedelta = timedelta(days=7),
        timeout: float = 30.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._status_db = status_db
        self._classifier = classifier
        self._notifier = notifier
        self._stale_after = stale_after
        self._timeout = timeout
        self._clock = clock

    def is_stale(self, status: ProductStatus, now: datetime | None = None) -> bool:
        return status.age(now or self._clock()) >= self._stale_after

    async def check(self, barcode: str) -> ReclassificationResult:
        product = self._status_db.get(barcode)
        if product is None:
            logger.warning("Skipping gluten check for missing product %s", barcode)
            return ReclassificationResult(
                barcode, ReclassifyState.UNCHANGED, error=ProductNotFound(barcode)
            )

        current = product.status.label
        if not self.is_stale(product.status):
            logger.debug("Status of %s is recent; no AI check needed", barcode)
            return ReclassificationResult(barcode, ReclassifyState.FRESH, current, current)

        logger.info("Status of %s (%s) is stale; checking with AI", barcode, product.name)
        try:
            assessment = await asyncio.wait_for(
                self._classifier.check_status(product.name, product.ingredients, current),
                self._timeout,
            )
        except Exception as e:
            if isinstance(e, asyncio.TimeoutError):
                e = ClassificationError(f"Gluten check timed out for {barcode}")
            logger.warning("Gluten check failed for %s; keeping '%s': %s", barcode, current, e)
            return ReclassificationResult(
                barcode, ReclassifyState.UNCHANGED, current, current, error=e
            )

        now = self._clock()
        if assessment.label == current:
            self._status_db.touch_evaluated(barcode, now)
            logger.info("No status change suggested for %s (still '%s')", barcode, current)
            return ReclassificationResult(barcode, ReclassifyState.UNCHANGED, current, current)

        self._status_db.update_status(
            barcode,
            ProductStatus(
                label=assessment.label,
                explanation=assessment.explanation,
                last_evaluated_at=now,
            ),
        )
        change = StatusChange(
            barcode=barcode,
            product_name=product.name,
            previous_label=current,
            new_label=assessment.label,
            explanation=assessment.explanation,
        )
        if self._notifier is not None:
            try:
                await self._notifier.notify(change)
            except Exception:
                logger.exception("Failed to send status change notification for %s", barcode)
        return ReclassificationResult(
            barcode, ReclassifyState.UPDATED, current, assessment.label
        )
