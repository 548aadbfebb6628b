"""
Tests for feed_personalizer/reporting/formatters.py.

What we test
------------
  - format_selected_items: rows in display order, promo marker, empty list.
  - format_selection_table: highest score first, share column,
    SELECTED-n markers in pick order, interest display names.
  - format_weights_table: highest weight first, Delta / Dir columns only
    when a previous map is given, empty map message.
"""

from __future__ import annotations

from feed_personalizer.engine.telemetry import build_selected_list_event
from feed_personalizer.models.item import Item
from feed_personalizer.reporting.formatters import (
    format_selected_items,
    format_selection_table,
    format_weights_table,
)


def _rows(text: str) -> list[str]:
    return [line for line in text.splitlines() if line.startswith("  ") and "---" not in line]


class TestFormatSelectedItems:
    def test_rows_in_order(self):
        items = [
            Item(uid="promo", interests=("x",), promote=True, score=0.5),
            Item(uid="other", interests=("y",), score=1.25),
        ]
        text = format_selected_items(items, {"promo": "Big Sale", "other": "Weekend"})
        rows = _rows(text)[1:]
        assert rows[0].split()[:4] == ["1", "promo", "0.500", "yes"]
        assert "Big Sale" in rows[0]
        assert rows[1].split()[:3] == ["2", "other", "1.250"]

    def test_unscored_item_shows_dash(self):
        text = format_selected_items([Item(uid="a", interests=("x",))], {})
        assert _rows(text)[1].split()[:3] == ["1", "a", "-"]

    def test_empty(self):
        assert "nothing to show" in format_selected_items([], {})


class TestFormatSelectionTable:
    def _event(self):
        considered = [
            Item(uid="low", interests=("x",), score=1.0),
            Item(uid="high", interests=("women", "y"), score=3.0),
        ]
        return build_selected_list_event(considered, [considered[0]], {"x": 0.5})

    def test_ranked_with_markers(self):
        text = format_selection_table(self._event(), {"women": "Women"})
        rows = _rows(text)[2:]
        assert rows[0].split()[0] == "high"
        assert "75.0%" in rows[0]
        assert "Women | y" in rows[0]
        assert "SELECTED" not in rows[0]
        assert rows[1].split()[0] == "low"
        assert rows[1].rstrip().endswith("SELECTED-1")

    def test_header_summary(self):
        text = format_selection_table(self._event())
        assert "Available: 2" in text
        assert "average_score: 2.0" in text
        assert "average_chosen: 1.0" in text

    def test_zero_scores_show_dash_share(self):
        event = build_selected_list_event([Item(uid="a", interests=("x",), score=0.0)], [], {})
        row = _rows(format_selection_table(event))[2]
        assert row.split()[2] == "-"


class TestFormatWeightsTable:
    def test_sorted_by_weight(self):
        text = format_weights_table({"a": 0.2, "b": 0.6}, {"b": "Beauty"})
        rows = _rows(text)[1:]
        assert rows[0].split()[0] == "Beauty"
        assert rows[1].split()[0] == "a"
        assert "Delta" not in text

    def test_delta_and_direction(self):
        text = format_weights_table(
            {"up": 0.6, "down": 0.3, "same": 0.2, "new": 0.5},
            previous={"up": 0.5, "down": 0.4, "same": 0.2},
        )
        rows = {row.split()[0]: row.split() for row in _rows(text)[1:]}
        assert rows["up"][-2:] == ["+0.100", "UP"]
        assert rows["down"][-2:] == ["-0.100", "DOWN"]
        assert rows["same"][-2:] == ["+0.000", "-"]
        assert rows["new"][-2:] == ["+0.500", "UP"]

    def test_empty(self):
        assert "no weights stored yet" in format_weights_table({})
