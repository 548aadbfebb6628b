"""
Personalization engine: the two entry points used by a UI layer.

    choose(raw_catalog, overrides, default_interests) -> list[Item]
        resolve settings → load weights (read-only) → sanitize → truncate
        to max_considered → score → select → emit ``selectedList``

    click(item_id, clicked_interests) -> dict[str, float]
        load weights → low-pass update → save → emit ``chosenLookbook``

``click`` is the only path that writes the store.  Its load-update-save
sequence runs under a per-engine lock so rapid double clicks cannot lose an
update.  ``choose`` takes no lock; it may see weights from just before or
just after an in-flight click.

Neither entry point raises for bad input or storage trouble: problems are
logged and the call degrades (empty selection, default weights, unsaved
update).
"""

from __future__ import annotations

import logging
import random
import threading
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from feed_personalizer.config import MergePolicy, PersonalizationConfig, resolve_settings
from feed_personalizer.engine.sampler import RandomSource, select
from feed_personalizer.engine.sanitizer import sanitize_catalog
from feed_personalizer.engine.scorer import score_items
from feed_personalizer.engine.telemetry import (
    TelemetryObserver,
    build_chosen_item_event,
    build_selected_list_event,
)
from feed_personalizer.engine.updater import update_weights
from feed_personalizer.models.item import DefaultInterest, Item
from feed_personalizer.models.telemetry import TelemetryEvent
from feed_personalizer.storage.store import WeightStore, WeightStoreError, initial_weights

logger = logging.getLogger(__name__)


class PersonalizationEngine:
    """Chooses catalog items for one user and learns from their clicks.

    Attributes:
        store:        Where the user's interest weights live.
        settings:     Built-in defaults that per-call overrides merge over.
        observer:     Telemetry receiver; ``None`` disables telemetry.
        merge_policy: How per-call overrides are merged (see ``config``).
    """

    def __init__(
        self,
        store: WeightStore,
        settings: Optional[PersonalizationConfig] = None,
        observer: Optional[TelemetryObserver] = None,
        rand: Optional[RandomSource] = None,
        merge_policy: MergePolicy = MergePolicy.PRESENT,
    ) -> None:
        self.store = store
        self.settings = settings or PersonalizationConfig()
        self.observer = observer
        self.merge_policy = merge_policy
        self._rand = rand or random.Random().random
        self._click_lock = threading.Lock()

    # ── Entry points ───────────────────────────────────────────────────────────

    def choose(
        self,
        raw_catalog: Any,
        overrides: Optional[Mapping[str, Any]] = None,
        default_interests: Optional[Mapping[str, DefaultInterest]] = None,
        rand: Optional[RandomSource] = None,
    ) -> list[Item]:
        """Return the items to show, best guesses first after promotions.

        Args:
            raw_catalog:       The feed's ``items`` array (untrusted).
            overrides:         Partial tunables for this call.
            default_interests: The feed's default interest table.
            rand:              Random source for this call only.

        Returns:
            At most ``count`` items; empty for an unusable catalog.
        """
        settings = resolve_settings(overrides, self.settings, self.merge_policy)
        defaults = dict(default_interests or {})
        weights = self._load(defaults, settings)

        considered = sanitize_catalog(raw_catalog)[: settings.max_considered]
        scored = score_items(considered, weights, defaults, settings)
        selected = select(scored, weights, settings, rand or self._rand, defaults)

        logger.info(
            "Chose %d of %d considered items (count=%d).",
            len(selected), len(scored), settings.count,
        )
        self._emit(build_selected_list_event(scored, selected, weights))
        return selected

    def click(
        self,
        item_id: str,
        clicked_interests: Iterable[str],
        default_interests: Optional[Mapping[str, DefaultInterest]] = None,
    ) -> dict[str, float]:
        """Record that the user opened an item and persist revised weights.

        Args:
            item_id:           uid of the opened item (telemetry only).
            clicked_interests: Interests of the opened item.
            default_interests: Feed defaults, used only when the user has no
                               stored weights yet.

        Returns:
            The updated weight map (saved unless the store failed).
        """
        interests = _interest_list(clicked_interests)
        with self._click_lock:
            weights = self._load(dict(default_interests or {}), self.settings)
            updated = update_weights(interests, weights, self.settings)
            try:
                self.store.save(updated)
            except WeightStoreError:
                logger.exception("Could not save weights after click on %r.", item_id)

        logger.info("Click on %r updated %d interest weights.", item_id, len(updated))
        self._emit(build_chosen_item_event(item_id, interests, updated))
        return updated

    # ── Read-only helpers ──────────────────────────────────────────────────────

    def weights(
        self,
        default_interests: Optional[Mapping[str, DefaultInterest]] = None,
    ) -> dict[str, float]:
        """Return the user's current weight map without changing it."""
        return self._load(dict(default_interests or {}), self.settings)

    def reset(self) -> bool:
        """Forget the user's stored weights; ``True`` if any existed."""
        with self._click_lock:
            return self.store.reset()

    # ── Internals ──────────────────────────────────────────────────────────────

    def _load(
        self,
        defaults: Mapping[str, DefaultInterest],
        settings: PersonalizationConfig,
    ) -> dict[str, float]:
        try:
            return self.store.load(
                defaults, settings.initial_weight, settings.interest_value_floor
            )
        except WeightStoreError:
            logger.exception("Could not load weights; using defaults.")
            return initial_weights(defaults, settings.initial_weight)

    def _emit(self, event: TelemetryEvent) -> None:
        if self.observer is None:
            return
        try:
            self.observer.on_event(event)
        except Exception:
            logger.exception("Telemetry observer failed on %s event.", event.event)


def _interest_list(clicked_interests: Any) -> list[str]:
    if isinstance(clicked_interests, str):
        return [clicked_interests]
    if clicked_interests is None:
        return []
    if not isinstance(clicked_interests, Iterable):
        logger.warning("Ignoring clicked interests of type %s.", type(clicked_interests).__name__)
        return []
    return [i for i in clicked_interests if isinstance(i, str)]
