"""Product catalog: read and create-only access for the resolution path."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from ..errors import CatalogError, ConflictExists
from ..models import Product, ProductStatus
from .schema import ensure_schema

logger = logging.getLogger(__name__)


def format_timestamp(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def row_to_product(row: sqlite3.Row) -> Product:
    try:
        ingredients = json.loads(row["ingredients"] or "[]")
    except (json.JSONDecodeError, TypeError):
        ingredients = []
    return Product(
        barcode=row["barcode"],
        name=row["name"],
        ingredients=list(ingredients),
        picture_url=row["picture_url"] or "",
        status=ProductStatus(
            label=row["status_label"],
            explanation=row["status_explanation"] or "",
            last_evaluated_at=parse_timestamp(row["last_evaluated_at"]),
        ),
    )


class CatalogDB:
    """Manages the products table for lookup and first-time creation.

    Existing rows are never modified here; gluten status changes go
    through StatusDB.
    """

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
        """Look up a product by barcode.

        Returns:
            The Product, or None if the barcode is not in the catalog.
        """
        try:
            row = self._get_conn().execute(
                "SELECT * FROM products WHERE barcode = ?", (barcode,)
            ).fetchone()
        except sqlite3.Error as e:
            raise CatalogError(f"Failed to read product {barcode}: {e}") from e
        return row_to_product(row) if row else None

    def create(self, product: Product, *, source: str = "local") -> Product:
        """Insert a new product.

        Raises:
            ConflictExists: If a product with the same barcode already exists.
            CatalogError: On any other database failure.
        """
        conn = self._get_conn()
        try:
            conn.execute(
                """INSERT INTO products
                   (barcode, name, ingredients, picture_url, status_label,
                    status_explanation, last_evaluated_at, source)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    product.barcode,
                    product.name,
                    json.dumps(product.ingredients, ensure_ascii=False),
                    product.picture_url,
                    product.status.label,
                    product.status.explanation,
                    format_timestamp(product.status.last_evaluated_at),
                    source,
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            if "UNIQUE" in str(e) or "PRIMARY KEY" in str(e):
                raise ConflictExists(product.barcode) from e
            raise CatalogError(f"Failed to create product {product.barcode}: {e}") from e
        except sqlite3.Error as e:
            conn.rollback()
            raise CatalogError(f"Failed to create product {product.barcode}: {e}") from e

        logger.info("Created product %s (%s) from %s", product.barcode, product.name, source)
        return product

    def list_stale(self, before: datetime, limit: int = 50) -> list[Product]:
        """Return products whose status was last evaluated at or before the given time."""
        try:
            rows = self._get_conn().execute(
                """SELECT * FROM products
                   WHERE last_evaluated_at <= ?
                   ORDER BY last_evaluated_at
                   LIMIT ?""",
                (format_timestamp(before), limit),
            ).fetchall()
        except sqlite3.Error as e:
            raise CatalogError(f"Failed to list stale products: {e}") from e
        return [row_to_product(r) for r in rows]

    def count(self) -> int:
        row = self._get_conn().execute("SELECT COUNT(*) AS n FROM products").fetchone()
        return row["n"]
