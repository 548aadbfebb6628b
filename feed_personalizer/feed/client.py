"""
Daily feed client — fetches the catalog and default interest table.

Feed format (JSON)::

    {
      "ver": "1.0",
      "interests": {
        "uid-1234": {"name": {"en": "Women"}, "weight": 0.065},
        ...
      },
      "items": [
        {"uid": "Rqfamru3", "interests": ["uid-1234"], "promote": false,
         "boost": 0.0, "title": {"en": "..."}, "link": "...", "previews": [...]},
        ...
      ]
    }

The feed is the same for every user and cacheable at the edge; all
personalization happens client-side.  ``items`` is handed to the engine raw
(the engine sanitizes it); ``interests`` is parsed here into a
``DefaultInterestTable``, dropping malformed rows.

Usage::

    client = FeedClient("https://example.com/daily?sched=style")
    feed = client.fetch()
    shown = engine.choose(feed.items, default_interests=feed.interests)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from feed_personalizer.feed.display import choose_text
from feed_personalizer.models.item import DefaultInterest, DefaultInterestTable

logger = logging.getLogger(__name__)


class FeedError(Exception):
    """Raised when the feed cannot be fetched, read or decoded."""


@dataclass
class Feed:
    """A decoded daily feed."""

    items: list[Any] = field(default_factory=list)
    interests: DefaultInterestTable = field(default_factory=dict)
    version: str = ""
    source: str = ""


def parse_default_interests(raw: Any, language: str = "en") -> DefaultInterestTable:
    """Parse the feed ``interests`` object; malformed rows are dropped.

    Args:
        raw:      ``{interest_id: {"name": ..., "weight": ...}}``.
        language: Language used for ``display_name``.
    """
    if not isinstance(raw, Mapping):
        if raw is not None:
            logger.warning("Feed interests are not an object; ignoring them.")
        return {}

    table: DefaultInterestTable = {}
    for interest_id, row in raw.items():
        if not isinstance(interest_id, str) or not isinstance(row, Mapping):
            logger.warning("Bad default interest entry %r dropped.", interest_id)
            continue
        name = row.get("name", interest_id)
        try:
            table[interest_id] = DefaultInterest(
                display_name=choose_text(name, language) if name is not None else interest_id,
                weight=row.get("weight") or 0.0,
            )
        except ValidationError as exc:
            logger.warning(
                "Default interest %r dropped: %s", interest_id, exc.errors()[0]["msg"]
            )
    return table


def parse_feed(payload: Any, source: str = "", language: str = "en") -> Feed:
    """Decode a feed payload (already JSON-parsed).

    Raises:
        FeedError: If the payload is not a JSON object.
    """
    if not isinstance(payload, Mapping):
        raise FeedError(f"Feed from {source or '<payload>'} is not a JSON object.")

    items = payload.get("items")
    if not isinstance(items, list):
        logger.warning("Feed from %s has no items array.", source or "<payload>")

    return Feed(
        items=items if isinstance(items, list) else [],
        interests=parse_default_interests(payload.get("interests"), language),
        version=str(payload.get("ver", "")),
        source=source,
    )


def load_feed_file(path: str | Path, language: str = "en") -> Feed:
    """Read a feed saved as a local JSON file.

    Raises:
        FeedError: If the file cannot be read or decoded.
    """
    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise FeedError(f"Cannot read feed file {path}: {exc}") from exc
    return parse_feed(payload, source=str(path), language=language)


class FeedClient:
    """HTTP client for the daily feed.

    Attributes:
        url:      Feed URL.
        timeout:  Request timeout in seconds.
        language: Language used for default interest display names.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        language: str = "en",
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Initialise the feed client.

        Args:
            url:       Feed URL.
            timeout:   Request timeout in seconds.
            language:  Display language.
            transport: Optional httpx transport (``httpx.MockTransport`` in tests).
        """
        self.url = url
        self.timeout = timeout
        self.language = language
        self._transport = transport

    def fetch(self) -> Feed:
        """GET and decode the feed.

        Raises:
            FeedError: On transport errors, non-2xx responses or bad JSON.
        """
        try:
            with httpx.Client(transport=self._transport, timeout=self.timeout) as client:
                resp = client.get(self.url, headers={"Accept": "application/json"})
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPError as exc:
            raise FeedError(f"Feed request to {self.url} failed: {exc}") from exc
        except ValueError as exc:
            raise FeedError(f"Feed from {self.url} is not valid JSON: {exc}") from exc

        feed = parse_feed(payload, source=self.url, language=self.language)
        logger.info(
            "Fetched feed %s: %d items, %d default interests.",
            self.url, len(feed.items), len(feed.interests),
        )
        return feed
