"""Product creation from user-submitted photos when no catalog knows the barcode."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable

from .ai import Extractor
from .db import CatalogDB
from .errors import CatalogError, ConflictExists, ExtractionError, UploadError, ValidationError
from .models import (
    ALLOWED_IMAGE_TYPES,
    UNKNOWN,
    UNKNOWN_AI_PRODUCT,
    ImageBlob,
    Product,
    ProductStatus,
    utcnow,
)
from .storage import ObjectStore

logger = logging.getLogger(__name__)


class CommunitySourcingFlow:
    """Builds a catalog product from 4–8 package photos.

    Extraction and upload both complete before anything is written, so a
    failure in either leaves the catalog untouched and the same photos can
    be resubmitted.
    """

    def __init__(
        self,
        extractor: Extractor,
        object_store: ObjectStore,
        store: CatalogDB,
        *,
        min_images: int = 4,
        max_images: int = 8,
        max_image_bytes: int = 5 * 1024 * 1024,
        path_prefix: str = "products",
        extract_timeout: float = 60.0,
        upload_timeout: float = 30.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._extractor = extractor
        self._object_store = object_store
        self._store = store
        self._min_images = min_images
        self._max_images = max_images
        self._max_image_bytes = max_image_bytes
        self._path_prefix = path_prefix.strip("/")
        self._extract_timeout = extract_timeout
        self._upload_timeout = upload_timeout
        self._clock = clock

    def validate(self, barcode: str, images: list[ImageBlob]) -> None:
        """Raise ValidationError if the submission cannot be processed."""
        if not barcode or not barcode.strip():
            raise ValidationError("A barcode is required")
        if len(images) < self._min_images:
            raise ValidationError(
                f"Please upload at least {self._min_images} images. Current: {len(images)}"
            )
        if len(images) > self._max_images:
            raise ValidationError(
                f"At most {self._max_images} images are allowed. Current: {len(images)}"
            )
        for image in images:
            if image.content_type not in ALLOWED_IMAGE_TYPES:
                raise ValidationError(
                    f"{image.filename} is not a valid image type. "
                    "Only JPG, PNG, GIF, WEBP are allowed."
                )
            if image.size > self._max_image_bytes:
                raise ValidationError(
                    f"{image.filename} exceeds the "
                    f"{self._max_image_bytes // (1024 * 1024)}MB size limit."
                )

    async def submit(self, barcode: str, images: list[ImageBlob]) -> Product:
        """Extract, upload and create the product.

        Returns:
            The created product, or the existing one if the barcode was
            added by someone else in the meantime.

        Raises:
            ValidationError: Bad image count, type or size. No AI or
                storage call is made.
            ExtractionError: The extractor failed or timed out.
            UploadError: The object store failed or timed out.
            CatalogError: The local catalog could not be written.
        """
        self.validate(barcode, images)

        existing = self._store.get(barcode)
        if existing is not None:
            logger.info("Product %s already exists; skipping community extraction", barcode)
            return existing

        try:
            info = await asyncio.wait_for(
                self._extractor.extract_product_info(images, barcode),
                self._extract_timeout,
            )
        except asyncio.TimeoutError as e:
            raise ExtractionError(f"Product extraction timed out for {barcode}") from e
        except Exception as e:
            raise ExtractionError(f"Product extraction failed for {barcode}: {e}") from e

        prefix = f"{self._path_prefix}/{barcode}" if self._path_prefix else barcode
        try:
            picture_url = await asyncio.wait_for(
                self._object_store.upload(images[0], prefix),
                self._upload_timeout,
            )
        except asyncio.TimeoutError as e:
            raise UploadError(f"Image upload timed out for {barcode}") from e
        except Exception as e:
            raise UploadError(f"Image upload failed for {barcode}: {e}") from e

        candidate = Product(
            barcode=barcode,
            name=info.name.strip() or UNKNOWN_AI_PRODUCT,
            ingredients=list(info.ingredients),
            picture_url=picture_url,
            status=ProductStatus(
                label=UNKNOWN,
                explanation="Created from community photos; not yet classified",
                last_evaluated_at=self._clock(),
            ),
        )
        try:
            return self._store.create(candidate, source="community")
        except ConflictExists:
            existing = self._store.get(barcode)
            if existing is None:
                raise
            logger.warning(
                "Product %s was created concurrently; uploaded image %s is unused",
                barcode, picture_url,
            )
            return existing
        except CatalogError:
            logger.warning(
                "Could not store product %s; uploaded image %s is unused", barcode, picture_url
            )
            raise
