"""
Method markers for context specifications.

Markers are recorded on test functions by decorators and read once, when the
owning ContextSpecification subclass is created. They replace runtime
attribute inspection with an explicit set of flags per method.

Example:
    >>> class WhenAddingAnItem(CartSpecification):
    ...     @prerequisite
    ...     def it_should_contain_one_item(self) -> None:
    ...         assert len(self.sut.items) == 1, "Expected 1 item"
    ...
    ...     @test
    ...     def it_should_have_a_total(self) -> None:
    ...         assert self.sut.total == 10
"""

from collections.abc import Callable
from enum import Flag, auto
from typing import Any, TypeVar

from pydantic import BaseModel, Field

from contextspec.exceptions import InvalidMarkerError

F = TypeVar("F", bound=Callable[..., Any])

MARKERS_ATTRIBUTE = "__contextspec_markers__"


class MethodMarker(Flag):
    """Boolean markers a test method can carry."""

    NONE = 0
    TEST = auto()
    PREREQUISITE = auto()
    EXCEPTION_RESILIENT = auto()
    DO_NOT_CALL_BECAUSE = auto()


class MethodMarkers(BaseModel):
    """Immutable set of markers declared on a single test method."""

    model_config = {"frozen": True, "extra": "forbid"}

    flags: MethodMarker = Field(
        default=MethodMarker.NONE,
        description="Combined marker flags",
    )
    expected_exceptions: tuple[type[BaseException] | None, ...] = Field(
        default=(),
        description="Exception types the test expects; None matches any exception",
    )
    description: str | None = Field(
        default=None,
        description="Explicit description overriding the generated one",
    )
    categories: tuple[str, ...] = Field(
        default=(),
        description="Explicitly declared categories",
    )

    def has(self, marker: MethodMarker) -> bool:
        """Check whether all bits of ``marker`` are set."""
        return (self.flags & marker) == marker

    @property
    def is_test(self) -> bool:
        return self.has(MethodMarker.TEST)

    @property
    def is_prerequisite(self) -> bool:
        return self.has(MethodMarker.PREREQUISITE)

    @property
    def calls_because(self) -> bool:
        return not self.has(MethodMarker.DO_NOT_CALL_BECAUSE)

    @property
    def has_expected_exception(self) -> bool:
        return bool(self.expected_exceptions)

    def with_flags(self, flags: MethodMarker) -> "MethodMarkers":
        """Return a copy with additional flags set."""
        return self.model_copy(update={"flags": self.flags | flags})


def get_markers(func: Any) -> MethodMarkers:
    """Return the markers recorded on ``func``, or an empty marker set."""
    markers = getattr(func, MARKERS_ATTRIBUTE, None)
    if isinstance(markers, MethodMarkers):
        return markers
    return MethodMarkers()


def _set_markers(func: F, markers: MethodMarkers) -> F:
    if not callable(func):
        raise InvalidMarkerError(f"Markers can only be applied to callables, got {func!r}")
    setattr(func, MARKERS_ATTRIBUTE, markers)
    return func


def _add_flags(func: F, flags: MethodMarker) -> F:
    return _set_markers(func, get_markers(func).with_flags(flags))


def test(func: F) -> F:
    """Mark a method as a test of its context specification."""
    return _add_flags(func, MethodMarker.TEST)


# keep pytest from collecting the decorator itself when it is imported into a test module
test.__test__ = False  # type: ignore[attr-defined]


def prerequisite(func: F) -> F:
    """Mark a test as a prerequisite of every other test in the fixture.

    Prerequisites run after Because and before the body of each dependent
    test. A failing prerequisite surfaces as PrerequisiteFailureError.
    """
    return _add_flags(func, MethodMarker.TEST | MethodMarker.PREREQUISITE)


def exception_resilient(func: F) -> F:
    """Tolerate expected exceptions raised while Because and prerequisites run."""
    return _add_flags(func, MethodMarker.EXCEPTION_RESILIENT)


def do_not_call_because(func: F) -> F:
    """Exclude a test from the orchestrated Because/prerequisite execution."""
    return _add_flags(func, MethodMarker.DO_NOT_CALL_BECAUSE)


def expected_exception(exc_type: type[BaseException] | None = None) -> Callable[[F], F]:
    """Declare that a test expects ``exc_type`` to be raised.

    Passing None expects any exception. The presence of an expected exception
    on any test makes every other test in the fixture exception resilient.
    """
    if exc_type is not None and not (
        isinstance(exc_type, type) and issubclass(exc_type, BaseException)
    ):
        raise InvalidMarkerError(f"Expected exception must be an exception type, got {exc_type!r}")

    def decorator(func: F) -> F:
        markers = get_markers(func)
        if exc_type in markers.expected_exceptions:
            return func
        return _set_markers(
            func,
            markers.model_copy(
                update={"expected_exceptions": markers.expected_exceptions + (exc_type,)}
            ),
        )

    return decorator


def description(text: str) -> Callable[[F], F]:
    """Attach an explicit description, suppressing the generated one."""
    if not text.strip():
        raise InvalidMarkerError("Description must not be empty or whitespace-only")

    def decorator(func: F) -> F:
        return _set_markers(func, get_markers(func).model_copy(update={"description": text}))

    return decorator


def category(name: str) -> Callable[[F], F]:
    """Attach an explicit category to a test."""
    if not name.strip():
        raise InvalidMarkerError("Category must not be empty or whitespace-only")

    def decorator(func: F) -> F:
        markers = get_markers(func)
        if name in markers.categories:
            return func
        return _set_markers(
            func, markers.model_copy(update={"categories": markers.categories + (name,)})
        )

    return decorator
