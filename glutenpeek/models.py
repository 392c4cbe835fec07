"""Data models for products, gluten status, and scan events."""

from __future__ import annotations

import mimetypes
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

GLUTEN_FREE = "gluten-free"
CONTAINS_GLUTEN = "contains-gluten"
UNKNOWN = "unknown"

LABELS = (GLUTEN_FREE, CONTAINS_GLUTEN, UNKNOWN)

UNKNOWN_PRODUCT = "Unknown Product"
UNKNOWN_AI_PRODUCT = "Unknown Product (from AI)"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_label(value: str | None) -> str | None:
    """Map a free-form label onto one of LABELS, or None if unrecognised."""
    if not value:
        return None
    cleaned = re.sub(r"[\s_]+", "-", str(value).strip().lower())
    aliases = {
        "gluten-free": GLUTEN_FREE,
        "glutenfree": GLUTEN_FREE,
        "contains-gluten": CONTAINS_GLUTEN,
        "gluten": CONTAINS_GLUTEN,
        "has-gluten": CONTAINS_GLUTEN,
        "unknown": UNKNOWN,
    }
    return aliases.get(cleaned)


def split_ingredients(value: str | list | tuple | None) -> list[str]:
    """Normalize an ingredients text blob or list into a list of strings.

    Commas and semicolons inside parentheses do not split, so
    "flour (wheat, barley), salt" yields two entries.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items: list[str] = []
        for entry in value:
            if isinstance(entry, dict):
                entry = entry.get("text") or entry.get("id") or ""
            text = str(entry).strip().rstrip(".").strip()
            if text:
                items.append(text)
        return items

    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in str(value):
        if ch in "([":
            depth += 1
        elif ch in ")]" and depth > 0:
            depth -= 1
        if ch in ",;\n" and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))

    result = []
    for part in parts:
        text = part.strip().rstrip(".").strip()
        if text:
            result.append(text)
    return result


@dataclass
class ProductStatus:
    label: str = UNKNOWN
    explanation: str = ""
    last_evaluated_at: datetime = field(default_factory=utcnow)

    def age(self, now: datetime | None = None):
        return (now or utcnow()) - self.last_evaluated_at


@dataclass
class Product:
    barcode: str
    name: str
    ingredients: list[str] = field(default_factory=list)
    picture_url: str = ""
    status: ProductStatus = field(default_factory=ProductStatus)

    def to_dict(self) -> dict:
        return {
            "barcode": self.barcode,
            "name": self.name,
            "ingredients": list(self.ingredients),
            "pictureUrl": self.picture_url,
            "status": {
                "label": self.status.label,
                "explanation": self.status.explanation,
                "lastEvaluatedAt": self.status.last_evaluated_at.isoformat(),
            },
        }


@dataclass
class ScanEvent:
    """One recorded scan of a product by a user."""

    user_id: str
    barcode: str
    timestamp: datetime
    id: int | None = None


ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")

_IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}
_SUFFIX_TYPES = {"jpeg": "image/jpeg", **{v: k for k, v in _IMAGE_EXTENSIONS.items()}}


@dataclass
class ImageBlob:
    """A user-submitted product photo held in memory."""

    data: bytes
    filename: str = "image.jpg"
    content_type: str = "image/jpeg"

    @classmethod
    def from_path(cls, path: str | Path) -> ImageBlob:
        p = Path(path)
        content_type = _SUFFIX_TYPES.get(p.suffix.lstrip(".").lower())
        if content_type is None:
            content_type = mimetypes.guess_type(p.name)[0] or "application/octet-stream"
        return cls(data=p.read_bytes(), filename=p.name, content_type=content_type)

    @property
    def extension(self) -> str:
        suffix = Path(self.filename).suffix.lstrip(".")
        if suffix:
            return suffix.lower()
        if self.content_type in _IMAGE_EXTENSIONS:
            return _IMAGE_EXTENSIONS[self.content_type]
        guessed = mimetypes.guess_extension(self.content_type) or ".jpg"
        return guessed.lstrip(".")

    @property
    def size(self) -> int:
        return len(self.data)
