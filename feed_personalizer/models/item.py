"""
Catalog item and default interest models.

``Item`` is one entry of the daily catalog after sanitization.  Items are
built fresh on every ``choose()`` call and never persisted.  Display fields
(title, summary, link, previews, ...) are carried through untouched; the
engine never inspects them for scoring.

``DefaultInterest`` is one row of the population-level interest priors that
the feed provider ships alongside the catalog.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Item(BaseModel):
    """A sanitized catalog entry.

    Attributes:
        uid: Identifier, unique within one catalog snapshot.
        interests: Interest identifiers, primary interest first.
        boost: Score multiplier offset; the summed score is multiplied by
            ``1 + boost``.  Never below ``-1``.
        promote: ``True`` if the item bypasses sampling and is always shown.
        score: Derived score attached by the scorer; ``None`` before scoring.
        title: Display title (plain string or ``{language: text}`` mapping).
        summary: Display summary (plain string or translations mapping).
        link: URL the item opens.
        previews: Preview images (``{"link", "width", "height"}`` dicts).

    Any other keys of the raw feed entry are kept as model extras.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    uid: str
    interests: tuple[str, ...] = ()
    boost: float = Field(default=0.0, ge=-1.0)
    promote: bool = False
    score: Optional[float] = None

    title: Any = None
    summary: Any = None
    link: Any = None
    previews: Any = Field(default_factory=list)

    def with_score(self, score: float) -> "Item":
        """Return a copy of this item carrying ``score``."""
        return self.model_copy(update={"score": score})


class DefaultInterest(BaseModel):
    """Population-level prior for one interest.

    Attributes:
        display_name: Human-readable interest name.
        weight: Prior weight; ``0`` means "no prior".
    """

    model_config = ConfigDict(frozen=True)

    display_name: str = ""
    weight: float = 0.0

    @field_validator("weight")
    @classmethod
    def validate_weight(cls, v: float) -> float:
        if not math.isfinite(v) or v < 0.0:
            raise ValueError(f"Interest weight must be a finite value >= 0, got {v}.")
        return v


DefaultInterestTable = dict[str, DefaultInterest]
