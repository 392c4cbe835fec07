"""Parsing of free-form model responses into structured results."""

from __future__ import annotations

import json
import re

from ..errors import ClassificationError
from ..models import CONTAINS_GLUTEN, GLUTEN_FREE, normalize_label, split_ingredients
from . import ExtractedProduct, GlutenAssessment

_CONTAINS_GLUTEN_RE = re.compile(
    r"contains gluten|has gluten|gluten[- ]containing"
    r"|\b(?:not|isn't|is not|never|no longer)\s+gluten[- ]free"
    r"|\b(?:unsuitable|not suitable|not safe)\b[^.\n]*gluten[- ]free",
    re.IGNORECASE,
)
_GLUTEN_FREE_RE = re.compile(r"gluten[- ]free", re.IGNORECASE)


def strip_fences(text: str) -> str:
    """Remove surrounding markdown code fences if present."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    return cleaned.strip()


def _load_json_object(text: str) -> dict | None:
    cleaned = strip_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", cleaned, re.DOTALL)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def parse_product_info(text: str) -> ExtractedProduct:
    """Best-effort extraction of name and ingredients. Never raises."""
    data = _load_json_object(text)
    if data is not None:
        name = data.get("name") or data.get("productName") or data.get("product_name") or ""
        return ExtractedProduct(
            name=str(name).strip(),
            ingredients=split_ingredients(data.get("ingredients")),
        )

    result = ExtractedProduct()
    name_match = re.search(r"Product name:?\s*([^\n]+)", text, re.IGNORECASE) or re.search(
        r"Name:?\s*([^\n]+)", text, re.IGNORECASE
    )
    if name_match and name_match.group(1).strip():
        result.name = name_match.group(1).strip().strip("*").strip()

    ingredients_match = re.search(
        r"Ingredients:?\s*([^\n]+(?:\n[^\n]+)*)", text, re.IGNORECASE
    )
    if ingredients_match and ingredients_match.group(1).strip():
        result.ingredients = split_ingredients(ingredients_match.group(1))
    return result


def parse_gluten_assessment(text: str) -> GlutenAssessment:
    """Parse a classifier response.

    Raises:
        ClassificationError: If no recognisable label is present.
    """
    data = _load_json_object(text)
    if data is not None:
        raw_label = data.get("glutenFreeStatus") or data.get("label") or data.get("status")
        label = normalize_label(raw_label)
        if label is not None:
            return GlutenAssessment(label=label, explanation=str(data.get("explanation") or ""))

    # contains-gluten wins whenever both readings are present
    label = None
    if _CONTAINS_GLUTEN_RE.search(text):
        label = CONTAINS_GLUTEN
    elif _GLUTEN_FREE_RE.search(text):
        label = GLUTEN_FREE
    if label is None:
        raise ClassificationError(f"No gluten status in model response: {text[:200]!r}")

    explanation = ""
    explanation_match = (
        re.search(r"explanation:?\s*([^\n]+(?:\n[^\n]+)*)", text, re.IGNORECASE)
        or re.search(r"analysis:?\s*([^\n]+(?:\n[^\n]+)*)", text, re.IGNORECASE)
        or re.search(r"assessment:?\s*([^\n]+(?:\n[^\n]+)*)", text, re.IGNORECASE)
    )
    if explanation_match:
        explanation = explanation_match.group(1).strip()
    return GlutenAssessment(label=label, explanation=explanation)
