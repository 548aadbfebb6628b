"""
Telemetry event payloads emitted by the personalization engine.

Two events exist, named as the analytics collector already knows them:

  - ``selectedList``   — emitted by ``choose()`` after a selection is made.
  - ``chosenLookbook`` — emitted by ``click()`` after weights were updated.

All numbers are rounded to 3 decimals.  Events are plain data; how they are
shipped (log line, analytics queue, debug table) is up to the observer.
"""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict


def round3(value: float) -> float:
    """Round to 3 decimal digits, the precision of every telemetry number."""
    return round(value, 3)


class ConsideredItem(BaseModel):
    """Score breakdown for one considered catalog item."""

    model_config = ConfigDict(frozen=True)

    interests: list[str]
    score: float


class SelectedListEvent(BaseModel):
    """Outcome of one ``choose()`` call.

    Attributes:
        average_score: Mean score across all considered items.
        average_chosen: Mean score across selected items.
        items: ``uid -> {interests, score}`` for all considered items.
        selected: Selected uids in display order.
        user_weights: Weight map the selection was computed from.
    """

    model_config = ConfigDict(frozen=True)

    event: Literal["selectedList"] = "selectedList"
    average_score: float
    average_chosen: float
    items: dict[str, ConsideredItem]
    selected: list[str]
    user_weights: dict[str, float]


class ChosenItemEvent(BaseModel):
    """Outcome of one ``click()`` call.

    Attributes:
        item_id: uid of the clicked item.
        interests: Interests of the clicked item.
        user_weights: Weight map after the update.
    """

    model_config = ConfigDict(frozen=True)

    event: Literal["chosenLookbook"] = "chosenLookbook"
    item_id: str
    interests: list[str]
    user_weights: dict[str, float]


TelemetryEvent = Union[SelectedListEvent, ChosenItemEvent]
