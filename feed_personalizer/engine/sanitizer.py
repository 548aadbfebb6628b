"""
Catalog sanitization: turns the untrusted feed ``items`` array into ``Item``
objects, dropping damaged entries.

Rejection rules (entry skipped, WARNING logged, processing continues):
  - The catalog itself is not a list/tuple   → treated as empty.
  - Entry is not a mapping (or ``Item``).
  - ``uid`` missing or not a string.
  - ``interests`` missing, not a list, empty, or holding non-strings.
  - ``uid`` already seen earlier in the same catalog.

Lenient fields (entry kept):
  - ``boost`` not a finite number (including ints too large for a float)
    → 0.0; below -1 → clamped to -1.
  - ``promote`` is only honoured when it is literally ``True``.

The input is never mutated, order is preserved, and sanitizing an already
sanitized list returns it unchanged.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import ValidationError

from feed_personalizer.models.item import Item

logger = logging.getLogger(__name__)


def sanitize_catalog(raw_catalog: Any) -> list[Item]:
    """Validate raw catalog entries into ``Item`` objects.

    Args:
        raw_catalog: The feed's ``items`` value; anything is accepted.

    Returns:
        Well-formed items in catalog order.
    """
    if not isinstance(raw_catalog, (list, tuple)):
        logger.warning(
            "Catalog is corrupted: expected a list, got %s.", type(raw_catalog).__name__
        )
        return []

    items: list[Item] = []
    seen: set[str] = set()
    for position, entry in enumerate(raw_catalog):
        item = _build_item(entry, position)
        if item is None:
            continue
        if item.uid in seen:
            logger.warning("Duplicate catalog uid %r at position %d dropped.", item.uid, position)
            continue
        seen.add(item.uid)
        items.append(item)

    dropped = len(raw_catalog) - len(items)
    if dropped:
        logger.info("Sanitized catalog: kept %d, dropped %d.", len(items), dropped)
    return items


def _build_item(entry: Any, position: int) -> Item | None:
    """Validate one raw entry; ``None`` if it must be dropped."""
    if isinstance(entry, Item):
        if not entry.interests:
            logger.warning("Catalog entry %r missing interests.", entry.uid)
            return None
        return entry

    if not isinstance(entry, Mapping):
        logger.warning("Bad catalog entry at position %d: not an object.", position)
        return None

    uid = entry.get("uid")
    if not isinstance(uid, str):
        logger.warning("Bad catalog entry at position %d: missing string uid.", position)
        return None

    interests = entry.get("interests")
    if not isinstance(interests, (list, tuple)) or len(interests) == 0:
        logger.warning("Catalog entry %r missing interests.", uid)
        return None
    if not all(isinstance(i, str) for i in interests):
        logger.warning("Catalog entry %r has non-string interests.", uid)
        return None

    fields = {k: v for k, v in entry.items() if isinstance(k, str) and not k.startswith("_")}
    fields["interests"] = tuple(interests)
    fields["boost"] = _coerce_boost(entry.get("boost"), uid)
    fields["promote"] = entry.get("promote") is True
    fields.pop("score", None)  # derived, never taken from input
    try:
        return Item.model_validate(fields)
    except ValidationError as exc:
        logger.warning("Catalog entry %r rejected: %s", uid, exc.errors()[0]["msg"])
        return None


def _coerce_boost(value: Any, uid: str) -> float:
    if value is None:
        return 0.0
    number = _finite_number(value)
    if number is None:
        logger.debug("Catalog entry %r has unusable boost %r; using 0.", uid, value)
        return 0.0
    if number < -1.0:
        logger.debug("Catalog entry %r boost %r clamped to -1.", uid, value)
        return -1.0
    return number


def _finite_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:  # int beyond the float range
        return None
    return number if math.isfinite(number) else None
