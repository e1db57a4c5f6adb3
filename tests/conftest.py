"""Pytest fixtures for contextspec tests."""

import pytest

from contextspec.config import ContextSpecConfig, set_config
from contextspec.execution.registry import FixtureTree

pytest_plugins = ["pytester"]


@pytest.fixture(autouse=True)
def default_config():
    """Run every test with the default configuration and restore the previous one."""
    previous = set_config(ContextSpecConfig())
    yield
    set_config(previous)


@pytest.fixture
def tree() -> FixtureTree:
    """An empty fixture tree."""
    return FixtureTree()
