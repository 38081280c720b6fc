"""Unit tests for the logging utility."""

from __future__ import annotations

import json
import logging

from tasktracker.core.logger import JSONFormatter, configure_logging


def test_configure_logging_sets_level() -> None:
    """``configure_logging`` should set the root logger level."""
    configure_logging("DEBUG")
    assert logging.getLogger().level == logging.DEBUG
    configure_logging("INFO")


def test_json_formatter_copies_known_extras() -> None:
    record = logging.LogRecord("tasktracker.auth", logging.INFO, __file__, 1, "auth.login", None, None)
    record.principal = "p-1"
    record.client_address = "10.0.0.1"
    record.password = "leak"

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "auth.login"
    assert payload["principal"] == "p-1"
    assert payload["client_address"] == "10.0.0.1"
    assert "password" not in payload
