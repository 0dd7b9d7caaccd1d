"""Shared fixtures for the StreamFetch test suite."""

from __future__ import annotations

import logging
import os
from typing import Iterator

import pytest

from StreamFetch.logging_utils import LOGGER_NAME
from StreamFetch.settings import reset_settings


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch) -> Iterator[None]:
    """Give every test fresh settings and a StreamFetch logger that propagates to caplog."""

    for key in list(os.environ):
        if key.startswith("STREAMFETCH_"):
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_streamfetch_managed", False):
            logger.removeHandler(handler)
            handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def umask() -> int:
    """Return the process umask without changing it."""

    current = os.umask(0)
    os.umask(current)
    return current


@pytest.fixture
def out_dir(tmp_path):
    """Extraction root that does not exist yet."""

    return tmp_path / "out"
