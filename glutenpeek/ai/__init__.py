"""AI capabilities: product extraction from images and gluten classification."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import GlutenPeekConfig
    from ..models import ImageBlob


@dataclass
class ExtractedProduct:
    name: str = ""
    ingredients: list[str] = field(default_factory=list)


@dataclass
class GlutenAssessment:
    label: str  # one of models.LABELS
    explanation: str = ""


class Extractor(ABC):
    """Derives a product name and ingredient list from package photos."""

    @abstractmethod
    async def extract_product_info(
        self, images: list[ImageBlob], barcode: str
    ) -> ExtractedProduct:
        ...


class Classifier(ABC):
    """Judges whether a product contains gluten from its name and ingredients."""

    @abstractmethod
    async def check_status(
        self, name: str, ingredients: list[str], current_label: str
    ) -> GlutenAssessment:
        ...


def create_backend(config: GlutenPeekConfig):
    """Create the configured AI backend (implements Extractor and Classifier)."""
    backend_name = config.ai.backend

    match backend_name:
        case "gemini":
            from .gemini import GeminiBackend

            return GeminiBackend(
                api_key=config.ai.gemini.api_key,
                model=config.ai.gemini.model,
            )
        case "claude":
            from .claude import ClaudeBackend

            return ClaudeBackend(
                api_key=config.ai.claude.api_key,
                model=config.ai.claude.model,
            )
        case _:
            raise ValueError(
                f"Unknown AI backend: {backend_name!r} (choose gemini or claude)"
            )


def create_extractor(config: GlutenPeekConfig) -> Extractor:
    return create_backend(config)


def create_classifier(config: GlutenPeekConfig) -> Classifier:
    return create_backend(config)
