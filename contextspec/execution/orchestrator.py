"""
Prerequisite-aware test execution.

The orchestrator decides, on entry to each test method, whether Because and
the prerequisite cascade must run, and installs the wrappers that form the
"before test" and "on exception" hooks of the standard and
exception-resilient execution strategies.

Entry state machine per invocation:
    idle -> entering -> Because invoked -> (prerequisites running) -> idle

Guard state is confined to one fixture instance and is not thread-safe; the
runner must never invoke two methods of the same instance concurrently.
"""

import functools
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, Protocol, runtime_checkable

from contextspec.exceptions import ContextSpecError
from contextspec.execution.classifier import MethodClassifier
from contextspec.execution.models import TestMethodInfo
from contextspec.execution.translator import ExceptionTranslator
from contextspec.log import get_logger

logger = get_logger(__name__)

GUARD_ATTRIBUTE = "_contextspec_prerequisite_guard"
ENTRY_ATTRIBUTE = "__contextspec_entry__"


@runtime_checkable
class SupportsPrerequisites(Protocol):
    """Capabilities the orchestrator requires from a fixture instance."""

    def because(self) -> None: ...

    def run_prerequisite_tests(self) -> None: ...


class PrerequisiteGuard:
    """Marks a fixture instance while its prerequisite cascade is running.

    The flag is False at construction, True only inside ``hold()`` and
    released on every exit path.

    Example:
        >>> guard = PrerequisiteGuard()
        >>> with guard.hold():
        ...     guard.is_running
        True
        >>> guard.is_running
        False
    """

    def __init__(self) -> None:
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @contextmanager
    def hold(self) -> Iterator[None]:
        """Set the flag for the duration of the block.

        Raises:
            ContextSpecError: If the guard is already held.
        """
        if self._running:
            raise ContextSpecError("Prerequisite cascade is already running on this instance")
        self._running = True
        try:
            yield
        finally:
            self._running = False

    def __repr__(self) -> str:
        return f"PrerequisiteGuard(running={self._running})"


class PrerequisiteOrchestrator:
    """Runs Because and prerequisites around orchestrated test methods.

    Args:
        classifier: Method classifier used to find expected exceptions.
        translator: Exception translator for both interception points.
    """

    def __init__(
        self,
        classifier: MethodClassifier | None = None,
        translator: ExceptionTranslator | None = None,
    ) -> None:
        self.classifier = classifier or MethodClassifier()
        self.translator = translator or ExceptionTranslator()

    # -------------------------------------------------------------------------
    # Entry state machine
    # -------------------------------------------------------------------------

    def guard_for(self, instance: Any) -> PrerequisiteGuard:
        """Return the guard of ``instance``, creating it on first use."""
        guard: PrerequisiteGuard = vars(instance).setdefault(GUARD_ATTRIBUTE, PrerequisiteGuard())
        return guard

    def is_cascade_running(self, instance: Any) -> bool:
        guard = vars(instance).get(GUARD_ATTRIBUTE)
        return guard is not None and guard.is_running

    def on_test_method_entry(self, instance: SupportsPrerequisites, method: TestMethodInfo) -> None:
        """Prepare ``instance`` before the body of ``method`` runs.

        A no-op while the instance's prerequisite cascade is running. Otherwise
        invokes Because once and, unless ``method`` is itself a prerequisite,
        runs the prerequisite cascade.
        """
        fixture = type(instance).__name__
        if self.guard_for(instance).is_running:
            logger.debug("reentrant_entry_skipped", fixture=fixture, method=method.name)
            return

        logger.debug("because_invoked", fixture=fixture, method=method.name)
        instance.because()

        if not method.is_prerequisite:
            self.run_prerequisites(instance)

    def run_prerequisites(self, instance: SupportsPrerequisites) -> None:
        """Run the prerequisite cascade of ``instance`` under its guard."""
        fixture = type(instance).__name__
        with self.guard_for(instance).hold():
            logger.debug("prerequisite_cascade_started", fixture=fixture)
            instance.run_prerequisite_tests()
        logger.debug("prerequisite_cascade_finished", fixture=fixture)

    # -------------------------------------------------------------------------
    # Wrappers
    # -------------------------------------------------------------------------

    def standard_entry(self, func: Callable[..., Any], method: TestMethodInfo) -> Callable[..., Any]:
        """Wrap ``func`` with entry handling and post-hoc failure translation.

        Only failures of the body are classified; errors raised while entering
        propagate unchanged.
        """

        @functools.wraps(func)
        def wrapper(instance: Any, *args: Any, **kwargs: Any) -> Any:
            self.on_test_method_entry(instance, method)
            try:
                return func(instance, *args, **kwargs)
            except AssertionError as exc:
                translation = self.translator.classify(exc, type(instance).__name__, method)
                if translation.replaced:
                    raise translation.exception from exc
                raise

        setattr(wrapper, ENTRY_ATTRIBUTE, "standard")
        return wrapper

    def resilient_entry(
        self, func: Callable[..., Any], method: TestMethodInfo
    ) -> Callable[..., Any]:
        """Wrap ``func`` with entry handling inside the expected-exception barrier.

        Exceptions raised while entering are swallowed when a sibling test
        declares them as expected. The body always runs afterwards; its
        return value is discarded.
        """

        @functools.wraps(func)
        def wrapper(instance: Any, *args: Any, **kwargs: Any) -> None:
            entry_error: Exception | None = None
            try:
                self.on_test_method_entry(instance, method)
            except Exception as exc:
                expected = self.classifier.collect_expected_exceptions(type(instance))
                if not self.translator.is_tolerated(exc, expected):
                    entry_error = exc
                else:
                    logger.debug(
                        "expected_exception_tolerated",
                        fixture=type(instance).__name__,
                        method=method.name,
                        exception=type(exc).__name__,
                    )

            try:
                func(instance, *args, **kwargs)
            except BaseException as body_error:
                if entry_error is not None and body_error.__context__ is None:
                    body_error.__context__ = entry_error
                raise

            if entry_error is not None:
                raise entry_error
            return None

        setattr(wrapper, ENTRY_ATTRIBUTE, "resilient")
        return wrapper

    def expecting_entry(
        self, func: Callable[..., Any], method: TestMethodInfo
    ) -> Callable[..., Any]:
        """Wrap ``func`` so it passes only if an expected exception is raised."""
        expected = method.markers.expected_exceptions

        @functools.wraps(func)
        def wrapper(instance: Any, *args: Any, **kwargs: Any) -> None:
            try:
                func(instance, *args, **kwargs)
            except Exception as exc:
                if self.translator.is_tolerated(exc, expected):
                    return None
                raise
            names = " or ".join(t.__name__ if t is not None else "an exception" for t in expected)
            raise AssertionError(f"Expected {names} to be raised by {method.qualified_name}")

        return wrapper

    def wrap(
        self, func: Callable[..., Any], method: TestMethodInfo, resilient: bool
    ) -> Callable[..., Any]:
        """Install the execution strategy selected for ``method``."""
        if resilient:
            wrapped = self.resilient_entry(func, method)
        else:
            wrapped = self.standard_entry(func, method)
        if method.markers.has_expected_exception:
            wrapped = self.expecting_entry(wrapped, method)
        return wrapped


default_orchestrator = PrerequisiteOrchestrator()
"""Orchestrator used by ContextSpecification subclasses."""
