"""
Exception types raised by the context specification runtime.

All errors derive from ContextSpecError so callers can catch the whole
family at once. PrerequisiteFailureError is the user-visible signal that a
prerequisite test failed while preparing a dependent test.
"""


class ContextSpecError(Exception):
    """Base class for all contextspec errors."""


class PrerequisiteFailureError(ContextSpecError):
    """Raised when a prerequisite test fails during a prerequisite cascade.

    Wraps the original assertion failure and prefixes the message with the
    fixture and method that failed, so the report points at the dependency
    instead of a confusing downstream assertion.
    """

    PREFIX = "Prerequisite failed"

    def __init__(self, fixture_name: str, method_name: str, original: BaseException) -> None:
        self.fixture_name = fixture_name
        self.method_name = method_name
        self.original = original
        super().__init__(f"{self.PREFIX}: {fixture_name}.{method_name}\n{original}")


class FixtureNotRegisteredError(ContextSpecError, KeyError):
    """Raised when a fixture identifier is not present in the fixture tree."""

    def __init__(self, fixture_id: str) -> None:
        self.fixture_id = fixture_id
        super().__init__(f"Fixture '{fixture_id}' is not registered")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class InvalidMarkerError(ContextSpecError, ValueError):
    """Raised when a marker decorator receives an invalid argument."""


class ConfigurationError(ContextSpecError, ValueError):
    """Raised when a configuration file cannot be loaded or validated."""
