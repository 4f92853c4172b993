"""Pytest fixtures."""

import pytest

from execrelay.config.access import clear_config_cache


@pytest.fixture(autouse=True)
def _fresh_config_cache():
    clear_config_cache()
    yield
    clear_config_cache()
