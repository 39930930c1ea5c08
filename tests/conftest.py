"""Pytest configuration and shared fixtures for nightwatch tests."""

import logging
from typing import Generator

import pytest

from nightwatch.core.logs import LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_nightwatch_logger() -> Generator[None, None, None]:
    """Drop handlers added by configure_logging so they never outlive a test's streams."""
    logger = logging.getLogger(LOGGER_NAME)
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def sh_shell(monkeypatch: pytest.MonkeyPatch) -> str:
    """Run discovery commands through a predictable shell."""
    monkeypatch.setenv("SHELL", "/bin/sh")
    return "/bin/sh"
