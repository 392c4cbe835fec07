"""Resolution outcome variants returned by the scan resolver."""

from __future__ import annotations

from dataclasses import dataclass

from .models import Product


@dataclass(frozen=True)
class FoundLocal:
    product: Product


@dataclass(frozen=True)
class FoundExternal:
    product: Product


@dataclass(frozen=True)
class NeedsCommunityInput:
    """Neither catalog knows the barcode; user photos are required."""

    barcode: str


@dataclass(frozen=True)
class Failed:
    """Resolution failed for a reason the caller may retry."""

    reason: str
    error: Exception | None = None
    retryable: bool = True


ResolutionOutcome = FoundLocal | FoundExternal | NeedsCommunityInput | Failed


def is_resolved(outcome: ResolutionOutcome) -> bool:
    return isinstance(outcome, (FoundLocal, FoundExternal))
