"""
ASCII terminal formatters for the CLI.

All formatters accept telemetry events / plain mappings and return
multi-line strings suitable for ``typer.echo()``.  They are debug views for
tuning the engine by hand; the engine itself never prints.

Selection table
---------------
One row per considered item, highest score first, with each item's share of
the total score and a ``SELECTED-n`` marker in pick order::

    Item        Score  Share  Interests              Picked
    -------------------------------------------------------------
    Rqfamru3    2.914  41.2%  Women | Women's Style  SELECTED-1

Weight table
------------
One row per interest, highest weight first.  When a previous weight map is
given, the change and its direction (UP / DOWN / -) are shown too.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Optional

from feed_personalizer.models.item import Item
from feed_personalizer.models.telemetry import SelectedListEvent


def format_selected_items(
    items: Sequence[Item],
    titles: Mapping[str, str],
) -> str:
    """Format the items returned by ``choose()`` in display order.

    Args:
        items:  Selected items.
        titles: ``uid -> display title`` (already localized).
    """
    lines: list[str] = ["", "=== Selected Items ==="]
    if not items:
        lines.append("  (nothing to show: catalog empty or unusable)")
        return "\n".join(lines)

    header = f"  {'#':>2}  {'Item':<12}  {'Score':>8}  {'Promo':>5}  Title"
    lines.append(header)
    lines.append("  " + "-" * (len(header) + 20))
    for position, item in enumerate(items, start=1):
        score = f"{item.score:.3f}" if item.score is not None else "-"
        promo = "yes" if item.promote else ""
        title = titles.get(item.uid, "")[:48]
        lines.append(
            f"  {position:>2}  {item.uid[:12]:<12}  {score:>8}  {promo:>5}  {title}"
        )
    return "\n".join(lines)


def format_selection_table(
    event: SelectedListEvent,
    interest_names: Optional[Mapping[str, str]] = None,
) -> str:
    """Format a ``selectedList`` event as a ranked table of considered items."""
    names = interest_names or {}
    picked = {uid: position for position, uid in enumerate(event.selected, start=1)}
    total = sum(row.score for row in event.items.values())

    lines: list[str] = ["", "=== Selection ==="]
    lines.append(
        f"  Available: {len(event.items)}  "
        f"average_score: {event.average_score}  "
        f"average_chosen: {event.average_chosen}"
    )
    header = f"  {'Item':<12}  {'Score':>8}  {'Share':>6}  {'Interests':<36}  Picked"
    lines.append(header)
    lines.append("  " + "-" * (len(header) + 6))

    ranked = sorted(event.items.items(), key=lambda kv: kv[1].score, reverse=True)
    for uid, row in ranked:
        share = f"{row.score / total:.1%}" if total > 0 else "-"
        interests = " | ".join(names.get(i, i) for i in row.interests)[:36]
        marker = f"SELECTED-{picked[uid]}" if uid in picked else ""
        lines.append(
            f"  {uid[:12]:<12}  {row.score:>8.3f}  {share:>6}  {interests:<36}  {marker}"
        )
    return "\n".join(lines)


def format_weights_table(
    weights: Mapping[str, float],
    interest_names: Optional[Mapping[str, str]] = None,
    previous: Optional[Mapping[str, float]] = None,
) -> str:
    """Format a weight map, optionally with changes against ``previous``.

    Args:
        weights:        Current weights.
        interest_names: ``interest_id -> display name``.
        previous:       Weights before the last change (shows Delta / Dir).
    """
    names = interest_names or {}
    total = sum(weights.values())

    lines: list[str] = ["", "=== Interest Weights ==="]
    if not weights:
        lines.append("  (no weights stored yet)")
        return "\n".join(lines)

    header = f"  {'Interest':<28}  {'Weight':>7}  {'Share':>6}"
    if previous is not None:
        header += f"  {'Delta':>7}  {'Dir':>4}"
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))

    for interest, weight in sorted(weights.items(), key=lambda kv: kv[1], reverse=True):
        label = names.get(interest, interest)[:28]
        share = f"{weight / total:.1%}" if total > 0 else "-"
        row = f"  {label:<28}  {weight:>7.3f}  {share:>6}"
        if previous is not None:
            delta = weight - previous.get(interest, 0.0)
            direction = "UP" if delta > 0 else "DOWN" if delta < 0 else "-"
            row += f"  {delta:>+7.3f}  {direction:>4}"
        lines.append(row)
    return "\n".join(lines)
