"""Shared fixtures"""
import logging
import os
from datetime import timedelta
from unittest.mock import patch
import pytest
import structlog

from config import Config


@pytest.fixture(autouse=True)
def clean_environment():
    """Keep exporter settings from the host environment out of the tests"""
    env = {key: value for key, value in os.environ.items()
           if not key.upper().startswith(("NEWRELIC_", "LOG_", "METRICS_", "SERVICE_"))}
    root = logging.getLogger()
    existing = list(root.handlers)
    with patch.dict(os.environ, env, clear=True):
        yield
    structlog.reset_defaults()
    for handler in [h for h in root.handlers if h not in existing]:
        root.removeHandler(handler)
        handler.close()


@pytest.fixture
def config():
    return Config(
        newrelic_account_id="12345",
        newrelic_api_key="insert-key",
        newrelic_uri="https://insights.example.com",
        newrelic_connect_timeout=timedelta(seconds=2),
        newrelic_read_timeout=timedelta(seconds=5),
    )
