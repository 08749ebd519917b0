"""Shared fixtures."""

import pytest

from sriguard.integrations import config as sri_config
from sriguard.integrations import logging as sri_logging


@pytest.fixture(autouse=True)
def isolated_globals(monkeypatch):
    """Give every test its own configuration, logger and metrics."""
    monkeypatch.setattr(sri_config, "_active_config", None)
    monkeypatch.setattr(sri_logging, "_default_logger", None)
    monkeypatch.setattr(sri_logging, "_default_metrics", None)
    yield
