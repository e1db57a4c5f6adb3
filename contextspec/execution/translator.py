"""
Exception translation for orchestrated test methods.

Two interception points:
- classify(): after a standard test method raised, re-label assertion
  failures of prerequisites as PrerequisiteFailureError.
- is_tolerated(): while an exception-resilient test enters, decide whether an
  exception from Because or the prerequisites was declared as expected.

Translation never retries; it only re-labels or suppresses.
"""

from collections.abc import Iterable, Sequence

from contextspec.config import get_config
from contextspec.exceptions import PrerequisiteFailureError
from contextspec.execution.models import FlowBehavior, TestMethodInfo, Translation
from contextspec.log import get_logger

logger = get_logger(__name__)


class ExceptionTranslator:
    """Classifies exceptions crossing the orchestrator boundary.

    Args:
        assertion_prefixes: Message prefixes that mark a classifiable
            assertion failure. Defaults to the active configuration.
    """

    def __init__(self, assertion_prefixes: Sequence[str] | None = None) -> None:
        self._prefixes = assertion_prefixes

    @property
    def assertion_prefixes(self) -> tuple[str, ...]:
        if self._prefixes is not None:
            return tuple(self._prefixes)
        return tuple(get_config().assertion_prefixes)

    def is_classifiable(self, exc: BaseException) -> bool:
        """Whether ``exc`` is an assertion failure with a recognized message prefix."""
        if not isinstance(exc, AssertionError):
            return False
        message = str(exc).lstrip()
        return any(message.startswith(prefix) for prefix in self.assertion_prefixes)

    def classify(
        self, exc: BaseException, fixture_name: str, method: TestMethodInfo
    ) -> Translation:
        """Decide what happens to an exception raised by a standard test method.

        Args:
            exc: The exception raised by the test method.
            fixture_name: Class name of the running fixture instance.
            method: The test method that raised.

        Returns:
            THROW with a PrerequisiteFailureError for classifiable failures of
            prerequisites, RETHROW for other classifiable failures and
            CONTINUE for everything else.
        """
        if not self.is_classifiable(exc):
            return Translation(FlowBehavior.CONTINUE, exc)

        if not method.is_prerequisite:
            return Translation(FlowBehavior.RETHROW, exc)

        failure = PrerequisiteFailureError(fixture_name, method.name, exc)
        failure.__cause__ = exc
        logger.debug(
            "prerequisite_failure_translated",
            fixture=fixture_name,
            method=method.name,
        )
        return Translation(FlowBehavior.THROW, failure)

    def is_tolerated(
        self, exc: BaseException, expected_types: Iterable[type[BaseException] | None]
    ) -> bool:
        """Whether ``exc`` matches one of the expected exception types.

        A None entry matches every exception.
        """
        for expected in expected_types:
            if expected is None or isinstance(exc, expected):
                return True
        return False
