"""
Contextspec - Context specifications for pytest.

Arrange/Act/Assert fixtures with prerequisite tests that run exactly once
before each dependent test, and natural language test descriptions derived
from the fixture inheritance chain.

Usage:
    contextspec describe <path>    # Print categories and descriptions
    contextspec classify <path>    # Print the execution strategy of each test
    contextspec init-config        # Write a sample configuration
"""

__version__ = "0.1.0"

from contextspec.exceptions import (
    ConfigurationError,
    ContextSpecError,
    FixtureNotRegisteredError,
    InvalidMarkerError,
    PrerequisiteFailureError,
)
from contextspec.execution import (
    ContextSpecification,
    category,
    description,
    do_not_call_because,
    exception_resilient,
    expected_exception,
    prerequisite,
    test,
)

__all__ = [
    "__version__",
    # Fixtures and markers
    "ContextSpecification",
    "category",
    "description",
    "do_not_call_because",
    "exception_resilient",
    "expected_exception",
    "prerequisite",
    "test",
    # Errors
    "ConfigurationError",
    "ContextSpecError",
    "FixtureNotRegisteredError",
    "InvalidMarkerError",
    "PrerequisiteFailureError",
]
