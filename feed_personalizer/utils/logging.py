"""
Log output for the ``feed-personalizer`` CLI.

Library modules only create loggers (``logging.getLogger(__name__)``); the CLI
calls ``configure_logging()`` once per command to decide where records go.
An application embedding the engine keeps its own logging setup.

Output
------
Console records go to stderr so that tables and JSON printed by commands on
stdout can be piped.  ``log_file`` adds a second, file-based handler.

With ``json_format = true`` every record becomes one JSON object.  Fields
passed through ``extra=`` are merged in, which is how ``LoggingObserver``
ships telemetry::

    {"ts": "2026-03-02T08:15:00Z", "level": "INFO",
     "logger": "feed_personalizer.telemetry", "msg": "telemetry chosenLookbook",
     "telemetry": {"event": "chosenLookbook", "item_id": "Rqfamru3", ...}}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from feed_personalizer.config import LoggingConfig

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Keys every LogRecord carries; anything else arrived via ``extra=``.
_STANDARD_KEYS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}

_NOISY_LOGGERS = ("httpx", "httpcore")


class _JsonFormatter(logging.Formatter):
    """Render a record as a single JSON line (``ts``, ``level``, ``logger``, ``msg`` + extras)."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict = {
            "ts": ts.strftime(TIMESTAMP_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(
            (key, val)
            for key, val in vars(record).items()
            if key not in _STANDARD_KEYS and not key.startswith("_")
        )
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _handlers(config: "LoggingConfig") -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file:
        path = Path(config.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    return handlers


def configure_logging(config: "LoggingConfig") -> None:
    """Install handlers on the root logger according to ``config``.

    Replaces any handlers installed by an earlier call.

    Args:
        config: ``[logging]`` section of the app config.
    """
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter: logging.Formatter = (
        _JsonFormatter()
        if config.json_format
        else logging.Formatter(TEXT_FORMAT, datefmt=TIMESTAMP_FORMAT)
    )
    handlers = _handlers(config)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
