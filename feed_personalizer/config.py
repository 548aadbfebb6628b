"""
Configuration for the CLI and the personalization engine.

Sources, lowest precedence first:
  1. ``config/default.toml``: committed defaults
  2. ``config/local.toml``: per-machine overrides (not committed)
  3. ``.env`` at the project root, then the real environment
     (``FEED_PERSONALIZER_DB_PATH``, ``_FEED_URL``, ``_LOG_LEVEL``, ``_DEBUG``)

``load_config(config_path=None) -> AppConfig`` reads all of them.

Per-call tunables
-----------------
``PersonalizationConfig`` is both the ``[personalization]`` section of the
app config and the resolved configuration handed to the scorer, sampler and
updater.  Callers of ``choose()`` may pass a partial override mapping; it is
merged over the base with ``resolve_settings()``.

Two merge policies exist:

  - ``present`` (default): a caller value wins whenever its key is present
    and not ``None``.  ``deprioritization = 0`` really disables
    deprioritization.
  - ``truthy``: a caller value wins only when it is truthy, so ``0`` and
    ``False`` silently revert to the default.  This is how the browser
    component behaved; it is kept for parity but is surprising.
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class MergePolicy(str, Enum):
    """How caller overrides are merged over the base configuration."""

    PRESENT = "present"
    TRUTHY = "truthy"


# ── Sub-config models ─────────────────────────────────────────────────────────


class StorageConfig(BaseModel):
    """SQLite weight store settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/personalizer.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000
    weights_key: str = "personalize-user-weights"


class FeedConfig(BaseModel):
    """Daily catalog feed location and display language."""

    model_config = ConfigDict(frozen=True)

    url: str = ""
    timeout_seconds: float = 30.0
    language: str = "en"


class PersonalizationConfig(BaseModel):
    """Resolved personalization tunables.

    Attributes:
        count: Maximum number of items returned by ``choose()``.
        max_considered: Catalog items examined (first N) before scoring.
        level0_multiplier: Boost for an item's first-listed (primary) interest.
        initial_value: Priority of an interest unknown to both the weight map
            and the default interest table; also the seed weight of a newly
            clicked interest.
        hit_value: Low-pass filter target for interests of the clicked item.
        miss_value: Low-pass filter target for every other interest.
        initial_weight: Seed weight when building a map from default
            interests that carry no weight.
        filter_const: Low-pass filter retention factor, in ``[0, 1]``.
        deprioritization: Fractional in-round weight reduction applied to the
            interests of each sampled item, in ``[0, 1]``.
        no_interests_value: Score of an item without interests.
        score_boost_exponent: Exponent applied to the summed score.
        interest_value_floor: Lower clamp for every stored weight.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    count: int = Field(default=4, ge=0)
    max_considered: int = Field(default=50, ge=0)
    level0_multiplier: float = Field(default=2.0, ge=0.0)
    initial_value: float = Field(default=0.5, ge=0.0)
    hit_value: float = 2.0
    miss_value: float = 0.0001
    initial_weight: float = Field(default=0.001, ge=0.0)
    filter_const: float = Field(default=0.95, ge=0.0, le=1.0)
    deprioritization: float = Field(default=0.2, ge=0.0, le=1.0)
    no_interests_value: float = Field(default=0.01, ge=0.0)
    score_boost_exponent: float = Field(default=1.9, gt=0.0)
    interest_value_floor: float = Field(default=0.1, gt=0.0, le=1.0)


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level {v!r}; use one of {', '.join(_LOG_LEVELS)}.")
        return level


class AppConfig(BaseModel):
    """Complete application configuration.

    Constructed by ``load_config()`` which merges TOML + .env.
    """

    model_config = ConfigDict(frozen=True)

    storage: StorageConfig = StorageConfig()
    feed: FeedConfig = FeedConfig()
    personalization: PersonalizationConfig = PersonalizationConfig()
    merge_policy: MergePolicy = MergePolicy.PRESENT
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Override resolution ───────────────────────────────────────────────────────

# Keys of the legacy nested ``interest`` override block.
_LEGACY_INTEREST_KEYS: dict[str, str] = {
    "level0_multiplier": "level0_multiplier",
    "initial":           "initial_value",
    "hit":               "hit_value",
    "miss":              "miss_value",
    "filter_const":      "filter_const",
    "deprioritization":  "deprioritization",
    "no_interests":      "no_interests_value",
    "scoreBoost":        "score_boost_exponent",
}


def _field_name_lookup() -> dict[str, str]:
    """Map every accepted key (snake_case name or camelCase alias) to a field."""
    lookup: dict[str, str] = {}
    for name, info in PersonalizationConfig.model_fields.items():
        lookup[name] = name
        if info.alias:
            lookup[info.alias] = name
    return lookup


_FIELD_LOOKUP = _field_name_lookup()


def _flatten_overrides(overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Collect recognized override values keyed by field name.

    Flat keys win over the legacy nested ``interest`` block.
    """
    collected: dict[str, Any] = {}

    nested = overrides.get("interest")
    if isinstance(nested, Mapping):
        for key, val in nested.items():
            field_name = _LEGACY_INTEREST_KEYS.get(key)
            if field_name is None:
                logger.debug("Ignoring unrecognized interest override %r", key)
                continue
            collected[field_name] = val

    for key, val in overrides.items():
        if key == "interest":
            continue
        field_name = _FIELD_LOOKUP.get(key)
        if field_name is None:
            logger.debug("Ignoring unrecognized override %r", key)
            continue
        collected[field_name] = val

    return collected


def resolve_settings(
    overrides: Optional[Mapping[str, Any]],
    base: Optional[PersonalizationConfig] = None,
    policy: MergePolicy = MergePolicy.PRESENT,
) -> PersonalizationConfig:
    """Merge caller overrides over ``base`` into one resolved configuration.

    Never raises for bad input: a value that fails validation is dropped
    with a warning and the base value is kept for that field.

    Args:
        overrides: Partial mapping of tunables (snake_case or camelCase keys,
            optionally the legacy nested ``interest`` block).  ``None`` or a
            non-mapping resolves to ``base`` unchanged.
        base: Built-in defaults.  Defaults to ``PersonalizationConfig()``.
        policy: ``MergePolicy.PRESENT`` or ``MergePolicy.TRUTHY``.

    Returns:
        A frozen ``PersonalizationConfig``.
    """
    base = base or PersonalizationConfig()
    if overrides is None:
        return base
    if not isinstance(overrides, Mapping):
        logger.warning(
            "Ignoring configuration overrides of type %s; expected a mapping.",
            type(overrides).__name__,
        )
        return base

    accepted: dict[str, Any] = {}
    for field_name, val in _flatten_overrides(overrides).items():
        if val is None:
            continue
        if policy is MergePolicy.TRUTHY and not val:
            continue
        candidate = base.model_dump()
        candidate[field_name] = val
        try:
            validated = PersonalizationConfig.model_validate(candidate)
        except ValidationError as exc:
            logger.warning(
                "Invalid override %s=%r (%s); keeping %r.",
                field_name,
                val,
                exc.errors()[0]["msg"],
                getattr(base, field_name),
            )
            continue
        accepted[field_name] = getattr(validated, field_name)

    if not accepted:
        return base
    return base.model_copy(update=accepted)


# ── Loader ────────────────────────────────────────────────────────────────────

CONFIG_DIR_NAME = "config"
DEFAULT_CONFIG_NAME = "default.toml"
LOCAL_CONFIG_NAME = "local.toml"

# Environment variable -> (section, key); ``None`` section means top level.
_ENV_OVERRIDES: dict[str, tuple[Optional[str], str]] = {
    "FEED_PERSONALIZER_DB_PATH":   ("storage", "db_path"),
    "FEED_PERSONALIZER_FEED_URL":  ("feed", "url"),
    "FEED_PERSONALIZER_LOG_LEVEL": ("logging", "level"),
    "FEED_PERSONALIZER_DEBUG":     (None, "debug"),
}

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})


def project_root() -> Path:
    """Directory holding ``pyproject.toml`` above this package (or its parent)."""
    here = Path(__file__).resolve().parent
    for candidate in (here, *here.parents[:4]):
        if (candidate / "pyproject.toml").is_file():
            return candidate
    return here.parent


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Build the application config from TOML files and the environment.

    Layers, later ones winning:
      1. ``config_path`` (default ``<project root>/config/default.toml``)
      2. ``local.toml`` next to it, if present
      3. ``FEED_PERSONALIZER_*`` variables (``.env`` at the project root is
         read first; real environment variables take precedence over it)

    Raises:
        FileNotFoundError: ``config_path`` does not exist.
        pydantic.ValidationError: A value is out of range or of the wrong type.
    """
    root = project_root()
    load_dotenv(dotenv_path=root / ".env", override=False)

    path = Path(config_path) if config_path is not None else (
        root / CONFIG_DIR_NAME / DEFAULT_CONFIG_NAME
    )
    if not path.is_file():
        raise FileNotFoundError(
            f"Config file not found: {path} (pass --config or create "
            f"{CONFIG_DIR_NAME}/{DEFAULT_CONFIG_NAME})."
        )

    raw = _read_toml(path)
    local = path.with_name(LOCAL_CONFIG_NAME)
    if local.is_file():
        logger.debug("Merging local config overrides from %s", local)
        raw = _deep_merge(raw, _read_toml(local))

    return _build_app_config(_apply_env_overrides(raw))


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as fh:
        return tomllib.load(fh)


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``override`` merged in, tables merged key by key."""
    merged = dict(base)
    for key, val in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(val, Mapping):
            merged[key] = _deep_merge(current, val)
        else:
            merged[key] = val
    return merged


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Overlay the ``FEED_PERSONALIZER_*`` variables listed in ``_ENV_OVERRIDES``."""
    for var, (section, key) in _ENV_OVERRIDES.items():
        value: Any = os.environ.get(var)
        if not value:
            continue
        if key == "debug":
            value = value.strip().lower() in _TRUE_STRINGS
        target = raw if section is None else raw.setdefault(section, {})
        target[key] = value
    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Validate the merged tables into an ``AppConfig``.

    ``merge_policy`` lives in the ``[personalization]`` table of the file but
    is a top-level field of ``AppConfig``; ``[project] debug`` is the
    fallback for a top-level ``debug``.
    """
    personalization = dict(raw.get("personalization", {}))
    merge_policy = personalization.pop("merge_policy", MergePolicy.PRESENT)
    debug = raw.get("debug", raw.get("project", {}).get("debug", False))

    return AppConfig(
        storage=StorageConfig(**raw.get("storage", {})),
        feed=FeedConfig(**raw.get("feed", {})),
        personalization=PersonalizationConfig(**personalization),
        merge_policy=merge_policy,
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=debug,
    )
