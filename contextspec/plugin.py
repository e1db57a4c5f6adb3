"""
pytest plugin for context specifications.

Registered through the ``pytest11`` entry point. It:
- loads the contextspec configuration and configures logging,
- collects ContextSpecification subclasses and their ``@test`` methods
  regardless of pytest's naming conventions,
- attaches categories and descriptions to the collected items.
"""

import inspect
from pathlib import Path
from typing import Any

import pytest

from contextspec.config import ConfigLoader, get_config, set_config
from contextspec.discovery import is_collectable_specification
from contextspec.exceptions import ConfigurationError
from contextspec.execution.markers import get_markers
from contextspec.execution.specification import ContextSpecification, fixture_metadata
from contextspec.log import configure_logging, get_logger

logger = get_logger(__name__)

CATEGORY_MARKER = "contextspec_category"


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add the contextspec command line option and ini key."""
    group = parser.getgroup("contextspec", "context specifications")
    group.addoption(
        "--contextspec-config",
        dest="contextspec_config",
        default=None,
        help="Path to a contextspec YAML configuration file",
    )
    parser.addini(
        "contextspec_config",
        help="Path to a contextspec YAML configuration file",
        default="",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Load the configuration and register the category marker."""
    config.addinivalue_line(
        "markers", f"{CATEGORY_MARKER}(name): category of a context specification test"
    )

    option = config.getoption("contextspec_config")
    path = option or config.getini("contextspec_config")
    if path:
        config_path = Path(path)
        if not config_path.is_absolute():
            config_path = (Path.cwd() if option else config.rootpath) / config_path
        try:
            set_config(ConfigLoader.from_yaml(config_path))
        except (FileNotFoundError, ConfigurationError) as e:
            raise pytest.UsageError(str(e)) from e

    active = get_config()
    configure_logging(active.log_level, active.log_format)
    logger.debug("contextspec_configured", config_path=str(path) if path else None)


@pytest.hookimpl(tryfirst=True)
def pytest_pycollect_makeitem(collector: pytest.Collector, name: str, obj: Any) -> Any:
    """Collect fixtures and their marked test methods."""
    if isinstance(collector, pytest.Class) and issubclass(collector.obj, ContextSpecification):
        if inspect.isfunction(obj) and get_markers(obj).is_test:
            return pytest.Function.from_parent(collector, name=name)
        return []

    if is_collectable_specification(obj):
        return pytest.Class.from_parent(collector, name=name, obj=obj)
    return None


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Attach category markers and descriptions to context specification tests."""
    for item in items:
        cls = getattr(item, "cls", None)
        if cls is None or not issubclass(cls, ContextSpecification):
            continue
        metadata = fixture_metadata(cls).get(getattr(item, "originalname", item.name))
        if metadata is None:
            continue
        for name in metadata.categories:
            item.add_marker(pytest.mark.contextspec_category(name))
            item.user_properties.append(("category", name))
        item.user_properties.append(("description", metadata.description))
