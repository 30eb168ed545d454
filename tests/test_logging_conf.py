from __future__ import annotations

import sys
from pathlib import Path

import pytest
from loguru import logger

sys.path.append(str(Path(__file__).resolve().parents[1]))

from cutrix.core.logging_conf import configure_logging


@pytest.fixture(autouse=True)
def restore_sinks():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_invalid_level_is_reported_through_the_logger(capsys):
    configure_logging("loud")
    logger.debug("hidden")
    logger.info("shown")

    out = capsys.readouterr().out
    assert "[WARNING]" in out
    assert "invalid log level LOUD, defaulting to INFO" in out
    assert "shown" in out
    assert "hidden" not in out


def test_valid_level_is_applied(capsys):
    configure_logging("debug")
    logger.debug("visible")

    out = capsys.readouterr().out
    assert "visible" in out
    assert "invalid log level" not in out
