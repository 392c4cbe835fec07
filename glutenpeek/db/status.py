"""Gluten status writer, used only by the staleness classifier."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from ..errors import CatalogError, ProductNotFound
from ..models import LABELS, Product, ProductStatus
from .catalog import format_timestamp, row_to_product
from .schema import ensure_schema

logger = logging.getLogger(__name__)


class StatusDB:
    """Reads products and overwrites their gluten status fields."""

    def __init__(self, db_path: str | Path = "~/.config/glutenpeek/glutenpeek.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def get(self, barcode: str) -> Product | None:
        try:
            row = self._get_conn().execute(
                "SELECT * FROM products WHERE barcode = ?", (barcode,)
            ).fetchone()
        except sqlite3.Error as e:
            raise CatalogError(f"Failed to read product {barcode}: {e}") from e
        return row_to_product(row) if row else None

    def update_status(self, barcode: str, status: ProductStatus) -> None:
        """Overwrite label, explanation and last_evaluated_at for a product.

        Raises:
            ProductNotFound: If no product has this barcode.
            ValueError: If the label is not one of LABELS.
        """
        if status.label not in LABELS:
            raise ValueError(f"Invalid gluten status label: {status.label!r}")
        self._execute(
            barcode,
            """UPDATE products
               SET status_label = ?, status_explanation = ?, last_evaluated_at = ?
               WHERE barcode = ?""",
            (
                status.label,
                status.explanation,
                format_timestamp(status.last_evaluated_at),
                barcode,
            ),
        )
        logger.info("Updated status of %s to %s", barcode, status.label)

    def touch_evaluated(self, barcode: str, evaluated_at: datetime) -> None:
        """Refresh last_evaluated_at without changing the label."""
        self._execute(
            barcode,
            "UPDATE products SET last_evaluated_at = ? WHERE barcode = ?",
            (format_timestamp(evaluated_at), barcode),
        )

    def _execute(self, barcode: str, sql: str, params: tuple) -> None:
        conn = self._get_conn()
        try:
            cur = conn.execute(sql, params)
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise CatalogError(f"Failed to update product {barcode}: {e}") from e
        if cur.rowcount == 0:
            raise ProductNotFound(barcode)
