"""Barcode scan resolution and AI gluten classification."""

from .config import GlutenPeekConfig, load_config
from .errors import (
    CatalogError,
    ClassificationError,
    ConflictExists,
    ExtractionError,
    GlutenPeekError,
    ProductNotFound,
    UploadError,
    UpstreamError,
    ValidationError,
)
from .models import (
    CONTAINS_GLUTEN,
    GLUTEN_FREE,
    UNKNOWN,
    ImageBlob,
    Product,
    ProductStatus,
    ScanEvent,
)
from .outcome import (
    Failed,
    FoundExternal,
    FoundLocal,
    NeedsCommunityInput,
    ResolutionOutcome,
)
from .service import ScanService, build_service

__all__ = [
    "GlutenPeekConfig",
    "load_config",
    "ScanService",
    "build_service",
    "Product",
    "ProductStatus",
    "ScanEvent",
    "ImageBlob",
    "GLUTEN_FREE",
    "CONTAINS_GLUTEN",
    "UNKNOWN",
    "ResolutionOutcome",
    "FoundLocal",
    "FoundExternal",
    "NeedsCommunityInput",
    "Failed",
    "GlutenPeekError",
    "CatalogError",
    "ConflictExists",
    "ProductNotFound",
    "UpstreamError",
    "ValidationError",
    "ExtractionError",
    "UploadError",
    "ClassificationError",
]
