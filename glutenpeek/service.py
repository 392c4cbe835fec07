"""Application service wiring the resolver, community flow and background worker."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from .ai import Classifier, Extractor, create_classifier, create_extractor
from .community import CommunitySourcingFlow
from .config import GlutenPeekConfig
from .db import CatalogDB, ScanJournal, StatusDB
from .external import ExternalCatalog, ExternalCatalogFallback, OpenFoodFactsClient
from .models import ImageBlob, Product, utcnow
from .notify import Notifier, create_notifier
from .outcome import ResolutionOutcome
from .resolver import ScanResolver
from .staleness import StalenessClassifier
from .storage import ObjectStore, create_object_store
from .worker import ReclassificationWorker

logger = logging.getLogger(__name__)


class ScanService:
    """The surface callers use: resolve-and-record a scan, submit photos."""

    def __init__(
        self,
        catalog: CatalogDB,
        journal: ScanJournal,
        resolver: ScanResolver,
        community: CommunitySourcingFlow,
        worker: ReclassificationWorker,
        *,
        closeables: list | None = None,
    ) -> None:
        self.catalog = catalog
        self.journal = journal
        self.resolver = resolver
        self.community = community
        self.worker = worker
        self._closeables = closeables or []

    async def __aenter__(self) -> ScanService:
        self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def start(self) -> None:
        self.worker.start()

    async def drain(self) -> None:
        """Wait for queued staleness checks to finish."""
        await self.worker.drain()

    async def close(self) -> None:
        await self.worker.stop()
        for resource in self._closeables:
            if hasattr(resource, "aclose"):
                await resource.aclose()
            else:
                resource.close()

    async def resolve_and_record_scan(
        self, barcode: str, user_id: str, timestamp: datetime | None = None
    ) -> ResolutionOutcome:
        if not self.worker.running:
            self.worker.start()
        return await self.resolver.resolve_and_record_scan(barcode, user_id, timestamp)

    async def submit_community_images(self, barcode: str, images: list[ImageBlob]) -> Product:
        """Create a product from user photos.

        Raises:
            ValidationError, ExtractionError, UploadError, CatalogError
        """
        return await self.community.submit(barcode, images)

    def get_product(self, barcode: str) -> Product | None:
        return self.catalog.get(barcode)

    def history(self, user_id: str, limit: int = 20) -> list[dict]:
        return self.journal.get_recent(user_id, limit=limit)


def build_service(
    config: GlutenPeekConfig,
    *,
    external: ExternalCatalog | None = None,
    extractor: Extractor | None = None,
    classifier: Classifier | None = None,
    object_store: ObjectStore | None = None,
    notifier: Notifier | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> ScanService:
    """Assemble a ScanService from configuration.

    Any collaborator passed explicitly replaces the configured one.
    """
    db_path = Path(config.database.path).expanduser()
    catalog = CatalogDB(db_path)
    status_db = StatusDB(db_path)
    journal = ScanJournal(db_path)
    closeables: list = [catalog, status_db, journal]

    if external is None:
        external = OpenFoodFactsClient(
            config.catalog.base_url,
            user_agent=config.catalog.user_agent,
            timeout=config.catalog.timeout,
        )
        closeables.append(external)

    if extractor is None or classifier is None:
        extractor = extractor or create_extractor(config)
        classifier = classifier or create_classifier(config)

    staleness = StalenessClassifier(
        status_db,
        classifier,
        notifier if notifier is not None else create_notifier(config),
        stale_after=timedelta(days=config.classification.stale_after_days),
        timeout=config.ai.classify_timeout,
        clock=clock,
    )
    worker = ReclassificationWorker(
        staleness,
        queue_size=config.classification.queue_size,
        workers=config.classification.workers,
    )

    fallback = ExternalCatalogFallback(
        external, catalog, timeout=config.catalog.timeout, clock=clock
    )
    resolver = ScanResolver(
        catalog, fallback, journal, on_resolved=worker.submit, clock=clock
    )

    cc = config.community
    community = CommunitySourcingFlow(
        extractor,
        object_store or create_object_store(config),
        catalog,
        min_images=cc.min_images,
        max_images=cc.max_images,
        max_image_bytes=int(cc.max_image_mb * 1024 * 1024),
        path_prefix=cc.path_prefix,
        extract_timeout=config.ai.extract_timeout,
        upload_timeout=config.storage.timeout,
        clock=clock,
    )

    logger.debug("Service ready (db=%s, ai=%s)", db_path, config.ai.backend)
    return ScanService(
        catalog, journal, resolver, community, worker, closeables=closeables
    )
