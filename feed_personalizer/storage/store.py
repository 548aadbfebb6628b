"""
Durable interest weight storage.

The weight map is one JSON object ``{interest: weight}`` stored under a fixed
logical key and replaced wholesale on every ``save()``.

``load()`` never fails on bad data: a missing, unreadable or corrupted
document is treated as absent and a map is synthesized from the feed's
default interest table instead.  The synthesized map is *not* written back;
it becomes durable with the first ``save()`` (i.e. the first click), so
``choose()`` stays read-only.

Backends
--------
InMemoryWeightStore : process-local; for tests and embedding.
SQLiteWeightStore   : local SQLite file; survives restarts.

Backend I/O failures surface as ``WeightStoreError``.
"""

from __future__ import annotations

import json
import logging
import math
import sqlite3
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Optional

from feed_personalizer.db.connection import get_connection
from feed_personalizer.db.repositories.kv_repo import KeyValueRepository
from feed_personalizer.db.schema import apply_schema
from feed_personalizer.models.item import DefaultInterest

logger = logging.getLogger(__name__)

WEIGHTS_KEY = "personalize-user-weights"


class WeightStoreError(Exception):
    """Raised when the storage backend cannot be read or written."""


def initial_weights(
    defaults: Mapping[str, DefaultInterest],
    initial_weight: float,
) -> dict[str, float]:
    """Synthesize a first weight map from the default interest table.

    Each interest gets its default ``weight`` when non-zero, else
    ``initial_weight``.
    """
    return {
        interest: default.weight or initial_weight
        for interest, default in defaults.items()
    }


def decode_weights(document: str) -> Optional[dict[str, float]]:
    """Parse a stored weight document; ``None`` if it is corrupted."""
    try:
        data = json.loads(document)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None

    weights: dict[str, float] = {}
    for key, val in data.items():
        if isinstance(val, bool) or not isinstance(val, (int, float)):
            return None
        try:
            number = float(val)
        except OverflowError:
            return None
        if not math.isfinite(number):
            return None
        weights[key] = number
    return weights


def clamp_weights(weights: Mapping[str, float], floor: float) -> dict[str, float]:
    """Return ``weights`` with every value clamped into ``[floor, 1.0]``."""
    return {key: max(floor, min(1.0, val)) for key, val in weights.items()}


class WeightStore(ABC):
    """Load and atomically replace the user's interest weight map.

    Subclasses only move opaque documents; encoding, validation and
    fallback live here.

    Attributes:
        key: Logical key the weight document is stored under.
    """

    def __init__(self, key: str = WEIGHTS_KEY) -> None:
        self.key = key

    # ── Backend hooks ──────────────────────────────────────────────────────────

    @abstractmethod
    def _read(self) -> Optional[str]:
        """Return the raw stored document, or ``None`` if there is none."""

    @abstractmethod
    def _write(self, document: str) -> None:
        """Replace the stored document in one atomic step."""

    @abstractmethod
    def _delete(self) -> bool:
        """Remove the stored document; ``True`` if one existed."""

    # ── Public API ─────────────────────────────────────────────────────────────

    def load(
        self,
        default_interests: Optional[Mapping[str, DefaultInterest]] = None,
        initial_weight: float = 0.001,
        interest_value_floor: float = 0.1,
    ) -> dict[str, float]:
        """Return the persisted weight map, or one synthesized from defaults.

        Stored values outside ``[interest_value_floor, 1.0]`` are clamped
        into it.  Synthesized values are returned as they are.

        Args:
            default_interests:    Feed's default interest table (may be empty).
            initial_weight:       Seed weight for defaults without a weight.
            interest_value_floor: Lower bound for stored weights.

        Returns:
            A fresh dict the caller may modify freely.

        Raises:
            WeightStoreError: If the backend cannot be read.
        """
        document = self._read()
        if document is not None:
            weights = decode_weights(document)
            if weights is not None:
                clamped = clamp_weights(weights, interest_value_floor)
                if clamped != weights:
                    logger.warning(
                        "Stored weights under %r were out of range; clamped to [%s, 1.0].",
                        self.key,
                        interest_value_floor,
                    )
                return clamped
            logger.warning(
                "Stored weights under %r are corrupted; reinitializing from defaults.",
                self.key,
            )
        return initial_weights(default_interests or {}, initial_weight)

    def save(self, weights: Mapping[str, float]) -> None:
        """Replace the persisted weight map.

        Raises:
            WeightStoreError: If the backend cannot be written.
        """
        self._write(json.dumps(dict(weights), sort_keys=True))
        logger.debug("Saved %d interest weights under %r.", len(weights), self.key)

    def reset(self) -> bool:
        """Forget the persisted weight map; ``True`` if one existed."""
        removed = self._delete()
        if removed:
            logger.info("Removed stored weights under %r.", self.key)
        return removed


class InMemoryWeightStore(WeightStore):
    """Weight store kept in process memory."""

    def __init__(self, key: str = WEIGHTS_KEY) -> None:
        super().__init__(key)
        self._documents: dict[str, str] = {}

    def _read(self) -> Optional[str]:
        return self._documents.get(self.key)

    def _write(self, document: str) -> None:
        self._documents[self.key] = document

    def _delete(self) -> bool:
        return self._documents.pop(self.key, None) is not None


class SQLiteWeightStore(WeightStore):
    """Weight store backed by a local SQLite file.

    A connection is opened per operation; each write is a single committed
    transaction, so readers see either the old or the new map, never a mix.

    Attributes:
        db_path: SQLite file path.
        wal_mode: Enable WAL journal mode.
        busy_timeout_ms: Lock wait before giving up.
    """

    def __init__(
        self,
        db_path: str,
        key: str = WEIGHTS_KEY,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        super().__init__(key)
        self.db_path = db_path
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms

    def _read(self) -> Optional[str]:
        try:
            with self._connect() as conn:
                apply_schema(conn)
                return KeyValueRepository(conn).get(self.key)
        except (sqlite3.Error, OSError) as exc:
            raise WeightStoreError(f"Cannot read weights from {self.db_path}: {exc}") from exc

    def _write(self, document: str) -> None:
        try:
            with self._connect() as conn:
                apply_schema(conn)
                KeyValueRepository(conn).put(self.key, document)
        except (sqlite3.Error, OSError) as exc:
            raise WeightStoreError(f"Cannot write weights to {self.db_path}: {exc}") from exc

    def _delete(self) -> bool:
        try:
            with self._connect() as conn:
                apply_schema(conn)
                return KeyValueRepository(conn).delete(self.key)
        except (sqlite3.Error, OSError) as exc:
            raise WeightStoreError(f"Cannot delete weights in {self.db_path}: {exc}") from exc

    def _connect(self):
        return get_connection(
            self.db_path,
            wal_mode=self.wal_mode,
            busy_timeout_ms=self.busy_timeout_ms,
        )
