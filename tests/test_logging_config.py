import json
import logging

import pytest
import structlog

from vault_import.config import Settings
from vault_import.logging_config import setup_logging


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logging.basicConfig(handlers=[logging.NullHandler()], level=logging.WARNING, force=True)
    structlog.reset_defaults()


def test_json_logging(capsys):
    setup_logging(Settings(log_level="debug", log_format="json"))

    structlog.get_logger("vault_import.test").info("import_parsed", ciphers=3)

    line = capsys.readouterr().err.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["event"] == "import_parsed"
    assert record["ciphers"] == 3
    assert record["level"] == "info"
    assert "timestamp" in record
    assert logging.getLogger().level == logging.DEBUG


def test_console_logging_level(capsys):
    setup_logging(Settings(log_level="WARNING", log_format="console"))

    structlog.get_logger("vault_import.test").info("hidden_event")
    structlog.get_logger("vault_import.test").warning("import_row_skipped", row=2)

    err = capsys.readouterr().err
    assert "hidden_event" not in err
    assert "import_row_skipped" in err
