"""SQLite storage for the product catalog and scan journal."""

from .catalog import CatalogDB
from .journal import ScanJournal
from .schema import ensure_schema
from .status import StatusDB

__all__ = [
    "CatalogDB",
    "StatusDB",
    "ScanJournal",
    "ensure_schema",
]
