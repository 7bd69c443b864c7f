"""Shared fixtures for image harvester tests."""

import pytest

from image_harvester.config import HarvesterConfig, reset_config
from image_harvester.tree import SurfaceLocation


@pytest.fixture
def config():
    return HarvesterConfig()


@pytest.fixture
def location():
    return SurfaceLocation(href="https://example.com/x/page.html")


@pytest.fixture(autouse=True)
def _reset_global_config():
    reset_config()
    yield
    reset_config()
