"""
Display helpers for rendering selected items.

``choose_text`` picks a localized string from a feed translations value;
``find_image`` picks the preview best suited to a display box.  Neither is
used for scoring.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Optional

BAD_TRANSLATION = "Bad translation information"


def choose_text(translations: Any, language: str = "en") -> str:
    """Return the text for ``language`` from a feed translations value.

    Rules:
      - A plain string is already the text.
      - A non-mapping value is bad data → ``BAD_TRANSLATION``.
      - An empty mapping → ``""``.
      - Otherwise the requested language, falling back to the first
        available translation.
    """
    if isinstance(translations, str):
        return translations
    if not isinstance(translations, Mapping):
        return BAD_TRANSLATION
    if not translations:
        return ""
    text = translations.get(language)
    if text is None:
        text = next(iter(translations.values()))
    return str(text)


def find_image(
    images: Sequence[Mapping[str, Any]],
    width: int,
    height: int,
) -> Optional[Mapping[str, Any]]:
    """Return the smallest image at least ``width`` x ``height``.

    "Smallest" compares diagonals.  When no image is big enough the first
    one (conventionally the largest) is returned; ``None`` for no images.
    """
    candidates = [image for image in images if isinstance(image, Mapping)]
    best: Optional[Mapping[str, Any]] = None
    best_size = float("inf")
    for image in candidates:
        w = _dimension(image.get("width"))
        h = _dimension(image.get("height"))
        if w >= width and h >= height:
            size = w * w + h * h
            if size < best_size:
                best, best_size = image, size
    if best is None and candidates:
        best = candidates[0]
    return best


def _dimension(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)
