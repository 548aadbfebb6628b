"""
``feed-personalizer`` command line.

Every command loads the app config, sets up logging, optionally reads the
daily feed, runs one engine call against the local SQLite weight store and
prints a short report.  Errors are printed as ``[ERROR] ...`` on stderr with
exit code 1.

Examples::

    feed-personalizer validate-config --full
    feed-personalizer choose --feed data/feeds/daily.json --seed 7 --debug
    feed-personalizer click Rqfamru3 -i uid-1234 -i uid-3456
    feed-personalizer show-weights --feed data/feeds/daily.json
    feed-personalizer reset-weights --yes
"""

from __future__ import annotations

import json
import random
from pathlib import Path
from typing import NoReturn, Optional

import typer

app = typer.Typer(
    name="feed-personalizer",
    help="Client-side feed personalization: choose items and learn from clicks.",
    add_completion=False,
)

_CONFIG_HELP = "TOML config file (default: config/default.toml)."


# ── Helpers ───────────────────────────────────────────────────────────────────

def _fail(message: str) -> NoReturn:
    typer.echo(f"[ERROR] {message}", err=True)
    raise typer.Exit(code=1)


def _load_config_or_exit(config_path: Optional[str] = None):
    """Return the AppConfig, or exit 1 with a readable message."""
    from feed_personalizer.config import load_config

    try:
        return load_config(Path(config_path) if config_path else None)
    except FileNotFoundError as exc:
        _fail(str(exc))
    except ValueError as exc:  # pydantic.ValidationError, TOML syntax errors
        _fail(f"Invalid configuration: {exc}")


def _configure_logging(config) -> None:
    from feed_personalizer.utils.logging import configure_logging

    configure_logging(config.logging)


def _build_engine(config, observer=None, rand=None):
    """Engine bound to the configured SQLite weight store."""
    from feed_personalizer.engine.personalizer import PersonalizationEngine
    from feed_personalizer.storage.store import SQLiteWeightStore

    store = SQLiteWeightStore(
        config.storage.db_path,
        key=config.storage.weights_key,
        wal_mode=config.storage.wal_mode,
        busy_timeout_ms=config.storage.busy_timeout_ms,
    )
    return PersonalizationEngine(
        store,
        settings=config.personalization,
        observer=observer,
        rand=rand,
        merge_policy=config.merge_policy,
    )


def _load_feed_or_exit(config, feed_file: Optional[str], url: Optional[str]):
    """Load the feed from a file, a URL, or the configured URL."""
    from feed_personalizer.feed.client import FeedClient, FeedError, load_feed_file

    try:
        if feed_file:
            return load_feed_file(feed_file, language=config.feed.language)
        target = url or config.feed.url
        if not target:
            _fail("No feed given: use --feed, --url or [feed] url.")
        client = FeedClient(
            target,
            timeout=config.feed.timeout_seconds,
            language=config.feed.language,
        )
        return client.fetch()
    except FeedError as exc:
        _fail(str(exc))


def _interest_names(feed) -> dict[str, str]:
    if feed is None:
        return {}
    return {k: v.display_name for k, v in feed.interests.items() if v.display_name}


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
    show_full: bool = typer.Option(
        False, "--full", help="Also dump every config field as JSON."
    ),
) -> None:
    """Check the config file and summarize the settings that matter most.

    Exit code 1 means the file is missing or a value is invalid.
    """
    config = _load_config_or_exit(config_path)
    p = config.personalization

    rows = [
        ("Weight store", config.storage.db_path),
        ("Feed URL", config.feed.url or "(none)"),
        ("Items shown", f"{p.count} (of first {p.max_considered} considered)"),
        ("Filter const", p.filter_const),
        ("Deprioritization", p.deprioritization),
        ("Merge policy", config.merge_policy.value),
        ("Log level", config.logging.level),
    ]
    typer.echo("Config loaded.")
    for label, value in rows:
        typer.echo(f"  {label + ':':<18}{value}")

    if show_full:
        typer.echo("")
        typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("choose")
def choose(
    feed_file: Optional[str] = typer.Option(
        None, "--feed", "-f", help="Path to a feed JSON file."
    ),
    url: Optional[str] = typer.Option(
        None, "--url", help="Feed URL (overrides [feed] url)."
    ),
    count: Optional[int] = typer.Option(
        None, "--count", "-n", help="Number of items to show."
    ),
    seed: Optional[int] = typer.Option(
        None, "--seed", help="Seed the random source for a repeatable pick."
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Print the scoring table and current weights."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Choose the items to show from today's feed.

    Read-only: stored weights are not changed.
    """
    from feed_personalizer.engine.telemetry import (
        CompositeObserver,
        LoggingObserver,
        RecordingObserver,
    )
    from feed_personalizer.feed.display import choose_text
    from feed_personalizer.reporting.formatters import (
        format_selected_items,
        format_selection_table,
        format_weights_table,
    )

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    feed = _load_feed_or_exit(config, feed_file, url)

    recorder = RecordingObserver()
    rand = random.Random(seed).random if seed is not None else None
    engine = _build_engine(config, CompositeObserver([LoggingObserver(), recorder]), rand)

    overrides = {"count": count} if count is not None else None
    selected = engine.choose(feed.items, overrides, feed.interests)

    titles = {item.uid: choose_text(item.title, config.feed.language) for item in selected}
    typer.echo(format_selected_items(selected, titles))

    if debug and recorder.last is not None:
        names = _interest_names(feed)
        typer.echo(format_selection_table(recorder.last, names))
        typer.echo(format_weights_table(recorder.last.user_weights, names))


@app.command("click")
def click(
    item_id: str = typer.Argument(..., help="uid of the opened item."),
    interests: Optional[list[str]] = typer.Option(
        None, "--interest", "-i", help="Interest of the opened item (repeatable)."
    ),
    feed_file: Optional[str] = typer.Option(
        None, "--feed", "-f",
        help="Feed JSON file; supplies default weights and interests for ITEM_ID.",
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Record a click and update the stored interest weights.

    Interests come from --interest, or from ITEM_ID's entry in --feed.
    """
    from feed_personalizer.engine.telemetry import LoggingObserver
    from feed_personalizer.reporting.formatters import format_weights_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    feed = _load_feed_or_exit(config, feed_file, None) if feed_file else None

    clicked = list(interests or [])
    if not clicked and feed is not None:
        for entry in feed.items:
            if isinstance(entry, dict) and entry.get("uid") == item_id:
                clicked = [i for i in entry.get("interests") or [] if isinstance(i, str)]
                break
    if not clicked:
        _fail(f"No interests for {item_id}: pass --interest or --feed.")

    defaults = feed.interests if feed is not None else None
    engine = _build_engine(config, LoggingObserver())
    previous = engine.weights(defaults)
    updated = engine.click(item_id, clicked, defaults)

    typer.echo(format_weights_table(updated, _interest_names(feed), previous))
    typer.echo("")
    typer.echo(f"[OK] Click on {item_id} recorded.")


@app.command("show-weights")
def show_weights(
    feed_file: Optional[str] = typer.Option(
        None, "--feed", "-f",
        help="Feed JSON file; supplies interest names and default weights.",
    ),
    as_json: bool = typer.Option(
        False, "--json", help="Print the raw weight map as JSON."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Show the user's current interest weights."""
    from feed_personalizer.reporting.formatters import format_weights_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    feed = _load_feed_or_exit(config, feed_file, None) if feed_file else None

    engine = _build_engine(config)
    weights = engine.weights(feed.interests if feed is not None else None)

    if as_json:
        typer.echo(json.dumps(weights, indent=2, sort_keys=True))
    else:
        typer.echo(format_weights_table(weights, _interest_names(feed)))


@app.command("reset-weights")
def reset_weights(
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Do not ask for confirmation."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Forget all learned interest weights."""
    from feed_personalizer.storage.store import WeightStoreError

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    if not yes:
        typer.confirm(
            f"Delete stored weights in {config.storage.db_path}?", abort=True
        )

    try:
        removed = _build_engine(config).reset()
    except WeightStoreError as exc:
        _fail(str(exc))

    typer.echo("[OK] Weights removed." if removed else "[OK] No stored weights.")


if __name__ == "__main__":
    app()
