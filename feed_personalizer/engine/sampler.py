"""
Selection: draws the items to show from a scored catalog.

Two phases
----------
1. Promotion pass-through.
   Items with ``promote=True`` go straight to the result in catalog order
   (at most ``count`` of them).  They consume no randomness and do not
   deprioritize anything.

2. Weighted sampling without replacement.
   For each remaining slot one item is drawn with probability proportional
   to its score.  Picture a pie where every item owns a slice sized by its
   score; a random point on the rim picks the slice::

       r = rand()                            # in [0, 1)
       running = 0
       for item in pool:
           running += item_score / score_sum
           if running >= r: pick item

   A pool whose scores sum to zero picks index 0 without drawing.  A sum that
   overflows to ``inf`` is walked over scores rescaled by the largest one.

   After each pick the interests of the picked item are deprioritized in a
   *working copy* of the weight map (``weight * (1 - deprioritization)``) and
   the rest of the pool is re-scored, so one sitting does not fill up with
   near-duplicates.  Lowered weights never drop below ``MIN_WORKING_WEIGHT``,
   so even ``deprioritization = 1`` keeps an interest at the bottom.  The
   working copy lives only for this call; the caller's map is untouched and
   nothing is persisted.

Result ordering: promoted items first, then sampled items in pick order.
Returned items keep the score they arrived with.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping, Sequence
from typing import Optional

from feed_personalizer.config import PersonalizationConfig
from feed_personalizer.engine.scorer import priority, score_item
from feed_personalizer.models.item import DefaultInterest, Item

logger = logging.getLogger(__name__)

RandomSource = Callable[[], float]

# Smallest in-round weight; 0 would read as "no weight" and fall back to the defaults.
MIN_WORKING_WEIGHT = 1e-9


def select(
    items: Sequence[Item],
    weights: Mapping[str, float],
    settings: PersonalizationConfig,
    rand: RandomSource,
    defaults: Optional[Mapping[str, DefaultInterest]] = None,
) -> list[Item]:
    """Pick up to ``settings.count`` items to show.

    Args:
        items:    Scored items, in catalog order.
        weights:  User weight map the scores were computed from.
        settings: Resolved tunables.
        rand:     Random source returning floats in ``[0, 1)``.  Inject a
                  deterministic one in tests.
        defaults: Default interest table, used when re-scoring the pool.

    Returns:
        Selected items; ``len <= settings.count``.
    """
    defaults = defaults or {}

    promoted = [item for item in items if item.promote][: settings.count]
    pool = [item for item in items if not item.promote]
    pool_scores = [
        item.score if item.score is not None else score_item(item, weights, defaults, settings)
        for item in pool
    ]

    result = list(promoted)
    slots = min(max(0, settings.count - len(promoted)), len(pool))
    working = dict(weights)

    for _ in range(slots):
        index = pick_index(pool_scores, rand)
        picked = pool.pop(index)
        pool_scores.pop(index)
        result.append(picked)
        logger.debug("Picked %r (slot %d of %d).", picked.uid, len(result), settings.count)

        _deprioritize(working, picked, defaults, settings)
        pool_scores = [score_item(item, working, defaults, settings) for item in pool]

    return result


def pick_index(scores: Sequence[float], rand: RandomSource) -> int:
    """Return the index chosen by one cumulative-distribution walk.

    Args:
        scores: Non-negative sampling scores of the current pool (non-empty).
        rand:   Random source; called once unless every score is zero.

    Returns:
        Index into ``scores``.
    """
    score_sum = sum(scores)
    if score_sum <= 0.0:
        return 0
    if math.isinf(score_sum):
        scores, score_sum = _rescale(scores)

    choice = rand()
    running = 0.0
    for index, score in enumerate(scores):
        running += score / score_sum
        if running >= choice:
            return index
    # Rounding can leave ``running`` a hair below 1.0.
    return len(scores) - 1


def _rescale(scores: Sequence[float]) -> tuple[list[float], float]:
    # Shares of a sum that overflowed to inf would all be 0 or NaN.
    top = max(scores)
    if math.isinf(top):
        scaled = [1.0 if math.isinf(score) else 0.0 for score in scores]
    else:
        scaled = [score / top for score in scores]
    return scaled, sum(scaled)


def _deprioritize(
    working: dict[str, float],
    picked: Item,
    defaults: Mapping[str, DefaultInterest],
    settings: PersonalizationConfig,
) -> None:
    factor = 1.0 - settings.deprioritization
    for interest in picked.interests:
        lowered = priority(interest, working, defaults, settings) * factor
        working[interest] = max(lowered, MIN_WORKING_WEIGHT)
