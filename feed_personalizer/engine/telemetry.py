"""
Telemetry: builds event payloads and hands them to pluggable observers.

The engine knows nothing about transports.  It builds a
``SelectedListEvent`` / ``ChosenItemEvent`` and calls
``observer.on_event(event)``.  Shipping to an analytics queue, printing a
debug table or recording for a test is the observer's business.

Observers
---------
LoggingObserver   : one INFO log line per event; payload in ``extra``.
RecordingObserver : keeps every event in ``events`` (tests, CLI debug view).
CompositeObserver : fans one event out to several observers.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Protocol, runtime_checkable

from feed_personalizer.models.item import Item
from feed_personalizer.models.telemetry import (
    ChosenItemEvent,
    ConsideredItem,
    SelectedListEvent,
    TelemetryEvent,
    round3,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class TelemetryObserver(Protocol):
    """Receives structured telemetry events."""

    def on_event(self, event: TelemetryEvent) -> None:
        ...


class LoggingObserver:
    """Log each event as one INFO line on ``logger_name``."""

    def __init__(self, logger_name: str = "feed_personalizer.telemetry") -> None:
        self._logger = logging.getLogger(logger_name)

    def on_event(self, event: TelemetryEvent) -> None:
        self._logger.info(
            "telemetry %s",
            event.event,
            extra={"telemetry": event.model_dump()},
        )


class RecordingObserver:
    """Keep every received event, oldest first."""

    def __init__(self) -> None:
        self.events: list[TelemetryEvent] = []

    def on_event(self, event: TelemetryEvent) -> None:
        self.events.append(event)

    @property
    def last(self) -> TelemetryEvent | None:
        return self.events[-1] if self.events else None


class CompositeObserver:
    """Forward each event to every wrapped observer, in order."""

    def __init__(self, observers: Iterable[TelemetryObserver]) -> None:
        self.observers = list(observers)

    def on_event(self, event: TelemetryEvent) -> None:
        for observer in self.observers:
            observer.on_event(event)


# ── Event builders ────────────────────────────────────────────────────────────


def _rounded(weights: Mapping[str, float]) -> dict[str, float]:
    return {interest: round3(weight) for interest, weight in weights.items()}


def _average(scores: Sequence[float]) -> float:
    if not scores:
        return 0.0
    # Dividing first keeps scores capped at float max from summing to inf.
    return round3(sum(score / len(scores) for score in scores))


def build_selected_list_event(
    considered: Sequence[Item],
    selected: Sequence[Item],
    weights: Mapping[str, float],
) -> SelectedListEvent:
    """Summarize one selection.

    Args:
        considered: Every scored item that took part in the selection.
        selected:   The returned items, in display order.
        weights:    Weight map the scores were computed from.
    """
    return SelectedListEvent(
        average_score=_average([item.score or 0.0 for item in considered]),
        average_chosen=_average([item.score or 0.0 for item in selected]),
        items={
            item.uid: ConsideredItem(
                interests=list(item.interests),
                score=round3(item.score or 0.0),
            )
            for item in considered
        },
        selected=[item.uid for item in selected],
        user_weights=_rounded(weights),
    )


def build_chosen_item_event(
    item_id: str,
    interests: Sequence[str],
    weights: Mapping[str, float],
) -> ChosenItemEvent:
    """Summarize one click with the post-update weight map."""
    return ChosenItemEvent(
        item_id=item_id,
        interests=list(interests),
        user_weights=_rounded(weights),
    )
