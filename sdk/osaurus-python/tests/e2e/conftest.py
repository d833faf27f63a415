import os

import pytest

from osaurus_sdk import Defaults


@pytest.fixture(autouse=True)
def _clean_environment():
    """Keep the caller's OSAURUS_* environment for live runs."""
    yield


@pytest.fixture
def small_model():
    """A small model suitable for integration testing."""
    return os.environ.get("OSAURUS_E2E_MODEL", Defaults.model)
