"""Unit tests for the structlog file logging setup."""

import json
import logging
import os

from updatekit.core.logging import default_log_file, drop_none, get_logger


def test_drop_none() -> None:
    event = {"event": "config_saved", "path": "/tmp/x", "custom_path": None}
    assert drop_none(None, "info", event) == {"event": "config_saved", "path": "/tmp/x"}


def test_log_file_under_state_dir() -> None:
    path = default_log_file()
    assert str(path).startswith(os.environ["XDG_STATE_HOME"])
    assert path.parts[-3:] == ("updatekit", "logs", "updatekit.log")


def test_events_written_as_json_lines() -> None:
    get_logger("tests").info("logging_check", backend="cargo", skipped=None)
    for handler in logging.root.handlers:
        handler.flush()

    lines = default_log_file().read_text().splitlines()
    records = [json.loads(line) for line in lines if "logging_check" in line]
    assert records
    assert records[-1]["backend"] == "cargo"
    assert "skipped" not in records[-1]
