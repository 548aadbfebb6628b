"""
Tests for feed_personalizer/engine/sanitizer.py.

What we test
------------
sanitize_catalog():
  - Non-list input (dict, None, string) → empty list, no exception.
  - Non-object entries, missing/non-string uid, missing/empty/non-list
    interests and non-string interests are dropped.
  - Survivors keep catalog order and passthrough display fields.
  - Duplicate uids: first wins.
  - boost: non-numeric / bool / non-finite / ints beyond the float range → 0.0;
    below -1 → -1.
  - promote honoured only for literal True.
  - Input entries are not mutated; a ``score`` in input is ignored.
  - Idempotent on its own output.
"""

from __future__ import annotations

import copy
import logging

import pytest

from feed_personalizer.engine.sanitizer import sanitize_catalog
from feed_personalizer.models.item import Item


class TestCatalogShape:
    @pytest.mark.parametrize("raw", [None, {"items": []}, "lookbooks", 42])
    def test_non_list_catalog_is_empty(self, raw):
        assert sanitize_catalog(raw) == []

    def test_non_list_catalog_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            sanitize_catalog({"uid": "x"})
        assert "corrupted" in caplog.text

    def test_list_of_non_objects_is_empty(self):
        assert sanitize_catalog([1, "two", None, [3]]) == []

    def test_tuple_catalog_accepted(self, make_entry):
        items = sanitize_catalog((make_entry("a", "x"),))
        assert [i.uid for i in items] == ["a"]


class TestEntryRejection:
    def test_missing_uid_dropped(self, make_entry):
        bad = make_entry("a", "x")
        del bad["uid"]
        assert sanitize_catalog([bad]) == []

    def test_non_string_uid_dropped(self, make_entry):
        assert sanitize_catalog([make_entry(123, "x")]) == []

    def test_missing_interests_dropped(self, make_entry):
        bad = make_entry("a", "x")
        del bad["interests"]
        assert sanitize_catalog([bad]) == []

    def test_empty_interests_dropped(self, make_entry):
        assert sanitize_catalog([make_entry("a")]) == []

    def test_interests_not_a_list_dropped(self, make_entry):
        assert sanitize_catalog([make_entry("a", interests="x")]) == []

    def test_non_string_interest_dropped(self, make_entry):
        assert sanitize_catalog([make_entry("a", "x", 7)]) == []

    def test_rejection_logs_and_continues(self, make_entry, caplog):
        raw = [None, make_entry("a", "x"), make_entry("b")]
        with caplog.at_level(logging.WARNING):
            items = sanitize_catalog(raw)
        assert [i.uid for i in items] == ["a"]
        assert "not an object" in caplog.text
        assert "missing interests" in caplog.text

    def test_duplicate_uid_keeps_first(self, make_entry):
        raw = [make_entry("a", "x"), make_entry("a", "y"), make_entry("b", "z")]
        items = sanitize_catalog(raw)
        assert [i.uid for i in items] == ["a", "b"]
        assert items[0].interests == ("x",)


class TestEntryFields:
    def test_order_preserved(self, raw_catalog):
        items = sanitize_catalog(raw_catalog)
        assert [i.uid for i in items] == [e["uid"] for e in raw_catalog]

    def test_display_fields_passed_through(self, make_entry):
        entry = make_entry("a", "x", owner="Lookbk", numImages=4)
        item = sanitize_catalog([entry])[0]
        assert item.title == {"en": "Lookbook a"}
        assert item.link == "https://example.com/lookbook/a"
        assert item.previews == entry["previews"]
        assert item.model_extra["owner"] == "Lookbk"
        assert item.model_extra["numImages"] == 4

    @pytest.mark.parametrize(
        "boost", ["high", True, float("nan"), float("inf"), None, 10**400, -(10**400)]
    )
    def test_unusable_boost_becomes_zero(self, make_entry, boost):
        item = sanitize_catalog([make_entry("a", "x", boost=boost)])[0]
        assert item.boost == 0.0

    def test_boost_below_minus_one_clamped(self, make_entry):
        item = sanitize_catalog([make_entry("a", "x", boost=-3)])[0]
        assert item.boost == -1.0

    def test_numeric_boost_kept(self, make_entry):
        item = sanitize_catalog([make_entry("a", "x", boost=0.25)])[0]
        assert item.boost == pytest.approx(0.25)

    def test_huge_float_boost_kept(self, make_entry):
        item = sanitize_catalog([make_entry("a", "x", boost=1e200)])[0]
        assert item.boost == 1e200

    @pytest.mark.parametrize("promote, expected", [(True, True), (False, False), ("yes", False), (1, False)])
    def test_promote_only_for_literal_true(self, make_entry, promote, expected):
        item = sanitize_catalog([make_entry("a", "x", promote=promote)])[0]
        assert item.promote is expected

    def test_input_score_ignored(self, make_entry):
        item = sanitize_catalog([make_entry("a", "x", score=99.0)])[0]
        assert item.score is None

    def test_input_not_mutated(self, raw_catalog):
        before = copy.deepcopy(raw_catalog)
        sanitize_catalog(raw_catalog)
        assert raw_catalog == before


class TestIdempotence:
    def test_sanitizing_twice_is_a_no_op(self, raw_catalog, make_entry):
        raw = raw_catalog + [None, make_entry("bad"), make_entry("lb-1", "dup")]
        once = sanitize_catalog(raw)
        twice = sanitize_catalog(once)
        assert twice == once

    def test_item_without_interests_dropped(self):
        assert sanitize_catalog([Item(uid="a")]) == []
