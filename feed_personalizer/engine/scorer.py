"""
Item scoring: converts an item's interests into a single non-negative score.

Score formula
-------------
    base  = priority(i0) * level0_multiplier + priority(i1) + ... + priority(in)
    score = max(0, base * (1 + boost)) ** score_boost_exponent

An item without interests scores ``no_interests_value`` before the boost and
exponent are applied.  Scores are capped at ``sys.float_info.max`` so that
huge weights or boosts never produce ``inf``.

priority(interest)
------------------
First non-zero value of:
    1. the user's weight map
    2. the feed's default interest table (population prior)
    3. ``initial_value``

Pure functions, no I/O.  Items are never mutated; ``score_items`` returns
copies carrying the derived ``score``.
"""

from __future__ import annotations

import sys
from collections.abc import Mapping, Sequence

from feed_personalizer.config import PersonalizationConfig
from feed_personalizer.models.item import DefaultInterest, Item


def priority(
    interest: str,
    weights: Mapping[str, float],
    defaults: Mapping[str, DefaultInterest],
    settings: PersonalizationConfig,
) -> float:
    """Return the priority of one interest for this user."""
    weight = weights.get(interest)
    if weight:
        return weight
    default = defaults.get(interest)
    if default is not None and default.weight:
        return default.weight
    return settings.initial_value


def score_item(
    item: Item,
    weights: Mapping[str, float],
    defaults: Mapping[str, DefaultInterest],
    settings: PersonalizationConfig,
) -> float:
    """Compute the score of one item.

    Args:
        item:     Item to score (its ``score`` field is ignored).
        weights:  User interest weights.
        defaults: Default interest table of the current feed.
        settings: Resolved tunables.

    Returns:
        A finite score >= 0.
    """
    if not item.interests:
        base = settings.no_interests_value
    else:
        base = 0.0
        for position, interest in enumerate(item.interests):
            value = priority(interest, weights, defaults, settings)
            if position == 0:
                value *= settings.level0_multiplier
            base += value

    base *= 1.0 + item.boost
    # A negative base would make a fractional power complex; NaN (inf * 0) scores 0.
    if not base > 0.0:
        return 0.0
    try:
        score = base ** settings.score_boost_exponent
    except OverflowError:
        return sys.float_info.max
    return min(score, sys.float_info.max)


def score_items(
    items: Sequence[Item],
    weights: Mapping[str, float],
    defaults: Mapping[str, DefaultInterest],
    settings: PersonalizationConfig,
) -> list[Item]:
    """Return copies of ``items`` with ``score`` attached, in input order."""
    return [
        item.with_score(score_item(item, weights, defaults, settings))
        for item in items
    ]
