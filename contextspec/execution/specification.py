"""
Base class for context specifications.

A context specification is one scenario: Arrange (``arrange`` and
``create_subject_under_test``), Act (``because``) and one or more test
methods. Subclassing registers the fixture in the fixture tree and wraps its
test methods so Because and the prerequisites run before each test body.

Example:
    >>> class Cart_Base(ContextSpecification[Cart]):
    ...     def create_subject_under_test(self) -> Cart:
    ...         return Cart()
    ...
    >>> class WhenAddingAnItem(Cart_Base):
    ...     def because(self) -> None:
    ...         self.sut.add("apple", price=10)
    ...
    ...     @prerequisite
    ...     def it_should_contain_one_item(self) -> None:
    ...         assert len(self.sut.items) == 1, "Expected 1 item"
    ...
    ...     @test
    ...     def it_should_have_a_total_of_ten(self) -> None:
    ...         assert self.sut.total == 10
"""

import typing
from typing import Any, ClassVar, Generic, TypeVar

from contextspec.execution.classifier import MethodClassifier
from contextspec.execution.models import FixtureNode, MethodMetadata
from contextspec.execution.orchestrator import PrerequisiteOrchestrator, default_orchestrator
from contextspec.execution.registry import fixture_id_of
from contextspec.log import get_logger
from contextspec.naming.context import ContextNamingService

logger = get_logger(__name__)

TSubject = TypeVar("TSubject")

METADATA_ATTRIBUTE = "__contextspec_metadata__"
DESCRIPTION_ATTRIBUTE = "__contextspec_description__"


def _subject_name(subject: Any) -> str:
    return getattr(subject, "__name__", None) or str(subject)


def _declared_subject(cls: type, subject: Any) -> str | None:
    """Return the subject from the class keyword or a subscripted base."""
    if subject is not None:
        return _subject_name(subject)
    for base in cls.__dict__.get("__orig_bases__", ()):
        origin = typing.get_origin(base)
        if not (isinstance(origin, type) and issubclass(origin, ContextSpecification)):
            continue
        args = typing.get_args(base)
        if args and not isinstance(args[0], TypeVar):
            return _subject_name(args[0])
    return None


def _parent_id(cls: type) -> str | None:
    for base in cls.__bases__:
        if issubclass(base, ContextSpecification) and base is not ContextSpecification:
            return fixture_id_of(base)
    return None


class ContextSpecification(Generic[TSubject]):
    """Root of all context specifications.

    Subscripting with the subject type (``ContextSpecification[Cart]``) or
    passing ``subject=`` as a class keyword names the tested subject used in
    categories and descriptions. Classes that remain generic are treated as
    subject-under-test bases and are left out of context descriptions.
    """

    description: ClassVar[str | None] = None
    orchestrator: ClassVar[PrerequisiteOrchestrator] = default_orchestrator
    naming: ClassVar[ContextNamingService] = ContextNamingService()
    classifier: ClassVar[MethodClassifier] = MethodClassifier()

    sut: TSubject

    def __init_subclass__(cls, subject: Any = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._register_fixture(subject)

    @classmethod
    def _register_fixture(cls, subject: Any) -> None:
        fixture_id = fixture_id_of(cls)
        node = FixtureNode(
            fixture_id=fixture_id,
            name=cls.__name__,
            parent_id=_parent_id(cls),
            is_parameterized=bool(cls.__dict__.get("__parameters__")),
            tested_subject_name=_declared_subject(cls, subject),
            description=cls.__dict__.get("description"),
        )
        cls.naming.tree.register(node)

        resilient = {m.name for m in cls.classifier.select_exception_resilient_test_methods(cls)}
        for method in cls.classifier.get_test_methods(cls):
            func = vars(cls)[method.name]
            setattr(cls, method.name, cls.orchestrator.wrap(func, method, method.name in resilient))

        metadata: dict[str, MethodMetadata] = {
            method.name: cls.naming.describe_method(method)
            for method in cls.classifier.get_declared_tests(cls)
        }
        setattr(cls, METADATA_ATTRIBUTE, metadata)
        setattr(cls, DESCRIPTION_ATTRIBUTE, cls.naming.describe_fixture(fixture_id))

        logger.debug(
            "fixture_registered",
            fixture_id=fixture_id,
            tests=len(metadata),
            resilient=sorted(resilient),
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def setup_method(self, method: Any = None) -> None:
        """Arrange the context before each test (pytest xunit-style hook)."""
        self.arrange()
        subject = self.create_subject_under_test()
        if subject is not None:
            self.sut = subject

    def teardown_method(self, method: Any = None) -> None:
        """Clean up after each test (pytest xunit-style hook)."""
        self.cleanup()

    def arrange(self) -> None:
        """Establish the context. Override in subclasses."""

    def create_subject_under_test(self) -> TSubject | None:
        """Create the subject under test, stored as ``self.sut`` when not None."""
        return None

    def because(self) -> None:
        """Perform the action under test. Runs once per outer test."""

    def cleanup(self) -> None:
        """Release resources acquired while arranging."""

    # -------------------------------------------------------------------------
    # Prerequisites
    # -------------------------------------------------------------------------

    @property
    def are_prerequisite_tests_running(self) -> bool:
        """Whether this instance is inside its prerequisite cascade."""
        return self.orchestrator.is_cascade_running(self)

    def run_prerequisite_tests(self) -> None:
        """Invoke every prerequisite test of this fixture.

        Called by the orchestrator while the prerequisite guard is held; each
        prerequisite runs through its wrapper so failures are translated.
        """
        for method in self.classifier.select_prerequisite_methods(type(self)):
            getattr(self, method.name)()


def fixture_metadata(fixture: type) -> dict[str, MethodMetadata]:
    """Return the method metadata computed when ``fixture`` was registered."""
    metadata: dict[str, MethodMetadata] = {}
    for klass in reversed(fixture.__mro__):
        metadata.update(vars(klass).get(METADATA_ATTRIBUTE, {}))
    return metadata


def fixture_description(fixture: type) -> str:
    """Return the context description computed when ``fixture`` was registered."""
    return str(vars(fixture).get(DESCRIPTION_ATTRIBUTE, ""))
