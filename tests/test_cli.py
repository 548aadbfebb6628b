"""
Tests for feed_personalizer/cli.py.

Runs each command through ``typer.testing.CliRunner`` against a temporary
config whose weight store lives under ``tmp_path`` and a feed saved as a
local JSON file.

What we test
------------
  - validate-config: success, --full JSON dump, missing file.
  - choose: selection output, --count, --debug tables, read-only, feed
    errors exit 1.
  - click: explicit --interest, interests looked up in --feed, no
    interests → exit 1.
  - show-weights: table and --json.
  - reset-weights: --yes, confirmation prompt.
"""

from __future__ import annotations

import json
import logging

import pytest
from typer.testing import CliRunner

from feed_personalizer.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    for name in ("FEED_PERSONALIZER_DB_PATH", "FEED_PERSONALIZER_FEED_URL"):
        monkeypatch.delenv(name, raising=False)
    db_path = (tmp_path / "db" / "personalizer.db").as_posix()
    path = tmp_path / "config" / "app.toml"
    path.parent.mkdir(parents=True)
    path.write_text(
        f"""
[storage]
db_path = "{db_path}"
wal_mode = true

[feed]
url = ""

[personalization]
count = 4

[logging]
level = "WARNING"
""",
        encoding="utf-8",
    )
    return str(path)


@pytest.fixture
def feed_file(tmp_path, raw_catalog):
    path = tmp_path / "daily.json"
    path.write_text(
        json.dumps({
            "ver": "1.0",
            "interests": {
                "women": {"name": {"en": "Women"}, "weight": 0.065},
                "style": {"name": {"en": "Women's Style"}, "weight": 0.04},
            },
            "items": raw_catalog,
        }),
        encoding="utf-8",
    )
    return str(path)


def _invoke(*args):
    return runner.invoke(app, list(args))


class TestValidateConfig:
    def test_ok(self, config_file):
        result = _invoke("validate-config", "--config", config_file)
        assert result.exit_code == 0, result.output
        assert "[OK] Config valid." in result.output
        assert "Merge policy:     present" in result.output

    def test_full(self, config_file):
        result = _invoke("validate-config", "--config", config_file, "--full")
        assert result.exit_code == 0, result.output
        assert '"weights_key": "personalize-user-weights"' in result.output

    def test_missing_file(self, tmp_path):
        result = _invoke("validate-config", "--config", str(tmp_path / "nope.toml"))
        assert result.exit_code == 1
        assert "[ERROR]" in result.output


class TestChoose:
    def test_selection(self, config_file, feed_file):
        result = _invoke("choose", "--config", config_file, "--feed", feed_file, "--seed", "3")
        assert result.exit_code == 0, result.output
        assert "=== Selected Items ===" in result.output
        assert "lb-4" in result.output
        assert "Lookbook lb-4" in result.output

    def test_same_seed_same_output(self, config_file, feed_file):
        args = ("choose", "--config", config_file, "--feed", feed_file, "--seed", "11")
        assert _invoke(*args).output == _invoke(*args).output

    def test_count(self, config_file, feed_file):
        result = _invoke("choose", "--config", config_file, "--feed", feed_file, "-n", "1")
        assert result.exit_code == 0, result.output
        assert "   1  lb-4" in result.output
        assert "   2  " not in result.output

    def test_debug_tables(self, config_file, feed_file):
        result = _invoke("choose", "--config", config_file, "--feed", feed_file, "--debug")
        assert result.exit_code == 0, result.output
        assert "=== Selection ===" in result.output
        assert "SELECTED-1" in result.output
        assert "=== Interest Weights ===" in result.output

    def test_does_not_store_weights(self, config_file, feed_file):
        _invoke("choose", "--config", config_file, "--feed", feed_file)
        result = _invoke("reset-weights", "--config", config_file, "--yes")
        assert "[OK] No stored weights." in result.output

    def test_no_feed_source(self, config_file):
        result = _invoke("choose", "--config", config_file)
        assert result.exit_code == 1
        assert "No feed given" in result.output

    def test_missing_feed_file(self, config_file, tmp_path):
        result = _invoke("choose", "--config", config_file, "--feed", str(tmp_path / "x.json"))
        assert result.exit_code == 1
        assert "Cannot read feed file" in result.output


class TestClick:
    def test_explicit_interests(self, config_file):
        result = _invoke("click", "lb-2", "-i", "travel", "-i", "food", "--config", config_file)
        assert result.exit_code == 0, result.output
        assert "[OK] Click on lb-2 recorded." in result.output
        assert "UP" in result.output

        shown = _invoke("show-weights", "--config", config_file, "--json")
        assert json.loads(shown.output) == {"food": 0.5, "travel": 0.5}

    def test_interests_from_feed(self, config_file, feed_file):
        result = _invoke("click", "lb-1", "--feed", feed_file, "--config", config_file)
        assert result.exit_code == 0, result.output
        assert "Women's Style" in result.output

        shown = _invoke("show-weights", "--config", config_file, "--json")
        weights = json.loads(shown.output)
        assert set(weights) == {"women", "style"}
        assert weights["women"] > weights["style"] > 0.1

    def test_no_interests(self, config_file):
        result = _invoke("click", "lb-1", "--config", config_file)
        assert result.exit_code == 1
        assert "No interests for lb-1" in result.output

    def test_unknown_item_in_feed(self, config_file, feed_file):
        result = _invoke("click", "missing", "--feed", feed_file, "--config", config_file)
        assert result.exit_code == 1


class TestShowWeights:
    def test_empty(self, config_file):
        result = _invoke("show-weights", "--config", config_file)
        assert result.exit_code == 0, result.output
        assert "no weights stored yet" in result.output

    def test_defaults_from_feed(self, config_file, feed_file):
        result = _invoke("show-weights", "--config", config_file, "--feed", feed_file)
        assert result.exit_code == 0, result.output
        assert "Women" in result.output
        assert "0.065" in result.output


class TestResetWeights:
    def test_yes(self, config_file):
        _invoke("click", "lb-2", "-i", "travel", "--config", config_file)
        result = _invoke("reset-weights", "--config", config_file, "--yes")
        assert result.exit_code == 0, result.output
        assert "[OK] Weights removed." in result.output

    def test_prompt_declined(self, config_file):
        _invoke("click", "lb-2", "-i", "travel", "--config", config_file)
        result = runner.invoke(app, ["reset-weights", "--config", config_file], input="n\n")
        assert result.exit_code == 1
        shown = _invoke("show-weights", "--config", config_file, "--json")
        assert json.loads(shown.output) == {"travel": 0.5}

    def test_prompt_accepted(self, config_file):
        _invoke("click", "lb-2", "-i", "travel", "--config", config_file)
        result = runner.invoke(app, ["reset-weights", "--config", config_file], input="y\n")
        assert result.exit_code == 0, result.output
        assert "[OK] Weights removed." in result.output
