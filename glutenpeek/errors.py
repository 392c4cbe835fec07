"""Exception hierarchy for product resolution and classification."""

from __future__ import annotations


class GlutenPeekError(Exception):
    """Base class for all glutenpeek errors."""


class CatalogError(GlutenPeekError):
    """The local catalog database could not be read or written."""


class ConflictExists(GlutenPeekError):
    """A product with this barcode already exists."""

    def __init__(self, barcode: str) -> None:
        super().__init__(f"Product already exists: {barcode}")
        self.barcode = barcode


class ProductNotFound(GlutenPeekError):
    def __init__(self, barcode: str) -> None:
        super().__init__(f"Product not found: {barcode}")
        self.barcode = barcode


class UpstreamError(GlutenPeekError):
    """An external dependency was unreachable or returned garbage."""


class ValidationError(GlutenPeekError):
    """User input was rejected before any external call was made."""


class ExtractionError(UpstreamError):
    """The AI extractor failed to read product info from images."""


class UploadError(UpstreamError):
    """The object store rejected or failed an upload."""


class ClassificationError(UpstreamError):
    """The AI classifier failed or returned no usable label."""
