"""
Method classification for context specifications.

Partitions the test methods of a fixture into the standard and the
exception-resilient execution strategies, and selects prerequisites.

Rules:
- Test methods are the methods declared directly on the fixture, marked as
  tests and not marked "do not call Because".
- If any test method of the fixture or of a class nested in it expects an
  exception, every other test method is exception resilient by implication.
- Otherwise only methods marked exception resilient (on the method or on the
  base method it overrides) are.
"""

import inspect
from collections.abc import Iterator
from typing import Any

from contextspec.execution.markers import MethodMarker, MethodMarkers, get_markers
from contextspec.execution.models import TestMethodInfo
from contextspec.execution.registry import fixture_id_of


def _declared_functions(klass: type) -> Iterator[tuple[str, Any, MethodMarkers]]:
    """Yield (name, function, markers) for functions declared directly on ``klass``."""
    for name, attr in vars(klass).items():
        if inspect.isfunction(attr):
            yield name, attr, get_markers(attr)


class MethodClassifier:
    """Answers method-classification queries about fixture classes.

    Example:
        >>> classifier = MethodClassifier()
        >>> [m.name for m in classifier.select_standard_test_methods(WhenAddingAnItem)]
        ['it_should_have_a_total']
    """

    def method_info(self, klass: type, name: str, markers: MethodMarkers) -> TestMethodInfo:
        return TestMethodInfo(
            name=name,
            fixture_id=fixture_id_of(klass),
            fixture_name=klass.__name__,
            markers=markers,
        )

    def get_test_methods(self, fixture: type) -> list[TestMethodInfo]:
        """Return the orchestrated test methods declared directly on ``fixture``.

        Args:
            fixture: The fixture class to inspect.

        Returns:
            Methods marked as tests and not marked "do not call Because",
            in declaration order.
        """
        return [
            self.method_info(fixture, name, markers)
            for name, _, markers in _declared_functions(fixture)
            if markers.is_test and markers.calls_because
        ]

    def get_declared_tests(self, fixture: type) -> list[TestMethodInfo]:
        """Return every test declared directly on ``fixture``, orchestrated or not."""
        return [
            self.method_info(fixture, name, markers)
            for name, _, markers in _declared_functions(fixture)
            if markers.is_test
        ]

    def _expects_exceptions(self, fixture: type, test_methods: list[TestMethodInfo]) -> bool:
        if any(m.markers.has_expected_exception for m in test_methods):
            return True
        return any(
            markers.has_expected_exception
            for nested in vars(fixture).values()
            if inspect.isclass(nested)
            for _, _, markers in _declared_functions(nested)
        )

    def _inherits_marker(self, fixture: type, name: str, marker: MethodMarker) -> bool:
        for klass in fixture.__mro__:
            attr = vars(klass).get(name)
            if inspect.isfunction(attr) and get_markers(attr).has(marker):
                return True
        return False

    def select_exception_resilient_test_methods(self, fixture: type) -> list[TestMethodInfo]:
        """Return the test methods that run under exception-tolerant semantics.

        Args:
            fixture: The fixture class to inspect.

        Returns:
            Every test method not expecting an exception when any method of
            the fixture (nested classes included) expects one; otherwise the
            methods marked exception resilient.
        """
        test_methods = self.get_test_methods(fixture)

        # nested expectations only trigger; exclusion is by the fixture's own methods
        if self._expects_exceptions(fixture, test_methods):
            return [m for m in test_methods if not m.markers.has_expected_exception]

        return [
            m
            for m in test_methods
            if self._inherits_marker(fixture, m.name, MethodMarker.EXCEPTION_RESILIENT)
        ]

    def select_standard_test_methods(self, fixture: type) -> list[TestMethodInfo]:
        """Return the test methods that are not exception resilient."""
        resilient = {m.name for m in self.select_exception_resilient_test_methods(fixture)}
        return [m for m in self.get_test_methods(fixture) if m.name not in resilient]

    def select_prerequisite_methods(self, fixture: type) -> list[TestMethodInfo]:
        """Return every prerequisite visible on ``fixture``, inherited ones included.

        The nearest override of a name decides whether it is a prerequisite.
        Names keep the position of their first definition, base classes first.
        """
        names: dict[str, None] = {}
        for klass in reversed(fixture.__mro__):
            for name, _, _ in _declared_functions(klass):
                names.setdefault(name)

        result: list[TestMethodInfo] = []
        for name in names:
            owner = next(klass for klass in fixture.__mro__ if name in vars(klass))
            attr = vars(owner)[name]
            if not inspect.isfunction(attr):
                continue
            markers = get_markers(attr)
            if markers.is_prerequisite:
                result.append(self.method_info(owner, name, markers))
        return result

    def collect_expected_exceptions(
        self, fixture: type
    ) -> tuple[type[BaseException] | None, ...]:
        """Return the distinct exception types expected by the fixture's test methods.

        A None entry means a test expects any exception.
        """
        seen: list[type[BaseException] | None] = []
        for method in self.get_test_methods(fixture):
            for exc_type in method.markers.expected_exceptions:
                if exc_type not in seen:
                    seen.append(exc_type)
        return tuple(seen)
