"""
Discovery of context specifications in Python source files.

Imports test modules from a file or directory and returns the
ContextSpecification subclasses they define, with the per-fixture report
used by the CLI.
"""

import importlib.util
import inspect
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any

from contextspec.config import get_config
from contextspec.execution.classifier import MethodClassifier
from contextspec.execution.models import MethodMetadata
from contextspec.execution.specification import (
    ContextSpecification,
    fixture_description,
    fixture_metadata,
)
from contextspec.log import get_logger

logger = get_logger(__name__)


class ExecutionStrategy:
    """Names of the execution strategies reported for a test method."""

    STANDARD = "standard"
    RESILIENT = "exception-resilient"
    NOT_ORCHESTRATED = "not orchestrated"


@dataclass
class MethodReport:
    """Description and classification of one test method."""

    name: str
    metadata: MethodMetadata
    strategy: str
    is_prerequisite: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.metadata.description,
            "categories": list(self.metadata.categories),
            "strategy": self.strategy,
            "prerequisite": self.is_prerequisite,
        }


@dataclass
class FixtureReport:
    """Description and classification of one fixture."""

    name: str
    module: str
    description: str
    methods: list[MethodReport] = field(default_factory=list)

    @property
    def categories(self) -> list[str]:
        seen: dict[str, None] = {}
        for method in self.methods:
            for name in method.metadata.categories:
                seen.setdefault(name)
        return list(seen)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "module": self.module,
            "description": self.description,
            "methods": [m.to_dict() for m in self.methods],
        }


def is_collectable_specification(obj: Any) -> bool:
    """Whether ``obj`` is a concrete fixture class that should run as tests.

    The root, generic subject-under-test bases, abstract classes, classes
    named with the base suffix and classes with ``__test__ = False`` are
    skipped.
    """
    if not inspect.isclass(obj) or not issubclass(obj, ContextSpecification):
        return False
    if obj is ContextSpecification or obj.__dict__.get("__parameters__"):
        return False
    if inspect.isabstract(obj) or not getattr(obj, "__test__", True):
        return False
    suffix = get_config().base_suffix
    return not (suffix and obj.__name__.endswith(suffix))


def load_module(path: Path) -> ModuleType:
    """Import a Python file as a module, making its directory importable."""
    module_name = f"contextspec_discovered_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot import {path}")

    directory = str(path.parent.resolve())
    if directory not in sys.path:
        sys.path.insert(0, directory)

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


def find_specifications(module: ModuleType) -> list[type]:
    """Return the collectable fixtures defined in ``module``, nested ones included."""
    found: list[type] = []
    seen: set[type] = set()
    pending = [obj for obj in vars(module).values() if inspect.isclass(obj)]
    while pending:
        obj = pending.pop(0)
        if obj.__module__ != module.__name__ or obj in seen:
            continue
        seen.add(obj)
        if is_collectable_specification(obj):
            found.append(obj)
        pending.extend(nested for nested in vars(obj).values() if inspect.isclass(nested))
    return found


def discover(path: str | Path, pattern: str = "*.py") -> list[type]:
    """Import every matching file under ``path`` and return its fixtures."""
    target = Path(path)
    files = [target] if target.is_file() else sorted(target.rglob(pattern))

    fixtures: list[type] = []
    for file_path in files:
        logger.debug("specification_module_loading", path=str(file_path))
        fixtures.extend(find_specifications(load_module(file_path)))
    return fixtures


def build_report(fixture: type, classifier: MethodClassifier | None = None) -> FixtureReport:
    """Describe and classify every test declared on ``fixture``."""
    classifier = classifier or MethodClassifier()
    resilient = {m.name for m in classifier.select_exception_resilient_test_methods(fixture)}
    orchestrated = {m.name for m in classifier.get_test_methods(fixture)}
    metadata = fixture_metadata(fixture)

    methods = []
    for method in classifier.get_declared_tests(fixture):
        if method.name not in orchestrated:
            strategy = ExecutionStrategy.NOT_ORCHESTRATED
        elif method.name in resilient:
            strategy = ExecutionStrategy.RESILIENT
        else:
            strategy = ExecutionStrategy.STANDARD
        methods.append(
            MethodReport(
                name=method.name,
                metadata=metadata[method.name],
                strategy=strategy,
                is_prerequisite=method.is_prerequisite,
            )
        )

    return FixtureReport(
        name=fixture.__name__,
        module=fixture.__module__,
        description=fixture_description(fixture),
        methods=methods,
    )
