"""
Interest weight update after a click: the feedback loop of the engine.

Every known interest moves toward a target with a low-pass filter::

    target = hit_value if interest was clicked else miss_value
    new    = filter_const * old + (1 - filter_const) * target
    new    = clamp(new, interest_value_floor, 1.0)

With the defaults (``filter_const=0.95``, ``hit_value=2``) a clicked interest
climbs toward 1.0 and everything else decays toward the floor.  The floor
keeps every interest selectable forever; nothing is excluded permanently.

Clicked interests the map has never seen are added with ``initial_value``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from feed_personalizer.config import PersonalizationConfig


def update_weights(
    clicked_interests: Iterable[str],
    weights: Mapping[str, float],
    settings: PersonalizationConfig,
) -> dict[str, float]:
    """Return the weight map revised for one click.

    Args:
        clicked_interests: Interests of the item the user opened.
        weights:           Current weight map (not modified).
        settings:          Resolved tunables.

    Returns:
        New weight map; every value lies in ``[interest_value_floor, 1.0]``.
    """
    clicked = dict.fromkeys(clicked_interests)
    keep = settings.filter_const
    updated: dict[str, float] = {}

    for interest, old in weights.items():
        target = settings.hit_value if interest in clicked else settings.miss_value
        updated[interest] = _clamp(keep * old + (1.0 - keep) * target, settings)

    for interest in clicked:
        if interest not in updated:
            updated[interest] = _clamp(settings.initial_value, settings)

    return updated


def _clamp(value: float, settings: PersonalizationConfig) -> float:
    return max(settings.interest_value_floor, min(1.0, value))
