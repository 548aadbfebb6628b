"""
Shared pytest fixtures for the feed personalizer test suite.

Provides:
  - ``settings``: default ``PersonalizationConfig``.
  - ``default_interests``: a small default interest table.
  - ``raw_catalog``: six raw feed entries, one of them promoted.
  - ``memory_store`` / ``sqlite_store``: empty weight stores.
  - ``in_memory_db``: in-memory SQLite connection with the schema applied.
  - ``engine``: a ``PersonalizationEngine`` over ``memory_store`` with a
    recording observer and a fixed random source.
  - ``fixed_rand``: factory for deterministic random sources.
  - ``make_entry``: factory for raw feed entries.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Generator, Iterable
from itertools import cycle

import pytest

from feed_personalizer.config import PersonalizationConfig
from feed_personalizer.db.schema import apply_schema
from feed_personalizer.engine.personalizer import PersonalizationEngine
from feed_personalizer.engine.telemetry import RecordingObserver
from feed_personalizer.models.item import DefaultInterest
from feed_personalizer.storage.store import InMemoryWeightStore, SQLiteWeightStore


def make_rand(values: Iterable[float]) -> Callable[[], float]:
    """Random source cycling through ``values``."""
    it = cycle(list(values))
    return lambda: next(it)


def raw_entry(uid: str, *interests: str, **fields) -> dict:
    """A raw feed entry with display fields filled in."""
    entry = {
        "uid": uid,
        "interests": list(interests),
        "title": {"en": f"Lookbook {uid}"},
        "summary": {"en": f"Summary of {uid}"},
        "link": f"https://example.com/lookbook/{uid}",
        "previews": [{"link": f"https://cdn.example.com/{uid}.jpg", "width": 300, "height": 300}],
    }
    entry.update(fields)
    return entry


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the schema applied."""
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    apply_schema(conn)
    yield conn
    conn.close()


# ── Engine fixtures ───────────────────────────────────────────────────────────

@pytest.fixture
def fixed_rand():
    return make_rand


@pytest.fixture
def make_entry():
    return raw_entry


@pytest.fixture
def settings() -> PersonalizationConfig:
    return PersonalizationConfig()


@pytest.fixture
def default_interests() -> dict[str, DefaultInterest]:
    return {
        "women": DefaultInterest(display_name="Women", weight=0.065),
        "style": DefaultInterest(display_name="Women's Style", weight=0.04),
        "travel": DefaultInterest(display_name="Travel", weight=0.0),
    }


@pytest.fixture
def raw_catalog() -> list[dict]:
    return [
        raw_entry("lb-1", "women", "style"),
        raw_entry("lb-2", "travel"),
        raw_entry("lb-3", "food", "travel"),
        raw_entry("lb-4", "style", promote=True),
        raw_entry("lb-5", "women", boost=0.5),
        raw_entry("lb-6", "autos"),
    ]


@pytest.fixture
def memory_store() -> InMemoryWeightStore:
    return InMemoryWeightStore()


@pytest.fixture
def sqlite_store(tmp_path) -> SQLiteWeightStore:
    return SQLiteWeightStore(str(tmp_path / "db" / "weights.db"))


@pytest.fixture
def recorder() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def engine(memory_store, recorder) -> PersonalizationEngine:
    return PersonalizationEngine(
        memory_store,
        observer=recorder,
        rand=make_rand([0.5]),
    )
