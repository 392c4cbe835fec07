"""Append-only journal of user scan events."""

from __future__ import annotations

import sqlite3
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

from ..errors import CatalogError
from ..models import ScanEvent
from .catalog import format_timestamp, parse_timestamp
from .schema import ensure_schema


class ScanJournal:
    """Manages the scan_events table."""

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

    def record_scan(self, user_id: str, barcode: str, timestamp: datetime) -> ScanEvent:
        """Append a scan event.

        The product must already exist; the foreign key rejects anything else.

        Returns:
            The stored ScanEvent with its row ID.
        """
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "INSERT INTO scan_events (user_id, barcode, scanned_at) VALUES (?, ?, ?)",
                (user_id, barcode, format_timestamp(timestamp)),
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise CatalogError(f"Failed to record scan of {barcode}: {e}") from e
        return ScanEvent(user_id=user_id, barcode=barcode, timestamp=timestamp, id=cur.lastrowid)

    def get_recent(self, user_id: str, limit: int = 20) -> list[dict]:
        """Return a user's most recent scans, newest first, with product info."""
        conn = self._get_conn()
        rows = conn.execute(
            """SELECT s.id, s.user_id, s.barcode, s.scanned_at,
                      p.name AS product_name, p.picture_url AS product_image,
                      p.status_label
               FROM scan_events s
               JOIN products p ON p.barcode = s.barcode
               WHERE s.user_id = ?
               ORDER BY s.scanned_at DESC, s.id DESC
               LIMIT ?""",
            (user_id, limit),
        ).fetchall()
        return [_scan_row(r) for r in rows]

    def get_by_date(self, user_id: str, day: date) -> list[dict]:
        """Return all scans a user made on the given (UTC) day."""
        start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
        end = start + timedelta(days=1)
        conn = self._get_conn()
        rows = conn.execute(
            """SELECT s.id, s.user_id, s.barcode, s.scanned_at,
                      p.name AS product_name, p.picture_url AS product_image,
                      p.status_label
               FROM scan_events s
               JOIN products p ON p.barcode = s.barcode
               WHERE s.user_id = ? AND s.scanned_at >= ? AND s.scanned_at < ?
               ORDER BY s.scanned_at""",
            (user_id, format_timestamp(start), format_timestamp(end)),
        ).fetchall()
        return [_scan_row(r) for r in rows]

    def count_for_barcode(self, barcode: str) -> int:
        row = self._get_conn().execute(
            "SELECT COUNT(*) AS n FROM scan_events WHERE barcode = ?", (barcode,)
        ).fetchone()
        return row["n"]


def _scan_row(row: sqlite3.Row) -> dict:
    d = dict(row)
    d["scanned_at"] = parse_timestamp(d["scanned_at"])
    return d
