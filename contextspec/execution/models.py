"""
Pydantic models describing registered fixtures and test methods.

Fixtures form an explicit ownership tree keyed by identifier (the
module-qualified class name). Test methods reference the fixture that
declares them, never one that merely inherits them.
"""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from contextspec.execution.markers import MethodMarkers


class FixtureNode(BaseModel):
    """One node of the fixture ownership tree.

    Example:
        >>> FixtureNode(
        ...     fixture_id="tests.cart.WhenAddingAnItem",
        ...     name="WhenAddingAnItem",
        ...     parent_id="tests.cart.Cart_Base",
        ... )
    """

    model_config = {"frozen": True, "extra": "forbid"}

    fixture_id: str = Field(..., min_length=1, description="Unique fixture identifier")
    name: str = Field(..., min_length=1, description="Short class name of the fixture")
    parent_id: str | None = Field(
        default=None,
        description="Identifier of the parent fixture; None when the parent is the root",
    )
    is_parameterized: bool = Field(
        default=False,
        description="Whether the fixture is a parameterized subject-under-test base",
    )
    tested_subject_name: str | None = Field(
        default=None,
        description="Name of the subject under test declared by this fixture",
    )
    description: str | None = Field(
        default=None,
        description="Explicit fixture description overriding the generated one",
    )

    @field_validator("name")
    @classmethod
    def name_is_valid(cls, v: str) -> str:
        """Validate that name is not whitespace-only."""
        if not v.strip():
            raise ValueError("Fixture name must not be empty or whitespace-only")
        return v


class TestMethodInfo(BaseModel):
    """A test method together with the markers it declares."""

    __test__ = False

    model_config = {"frozen": True, "extra": "forbid"}

    name: str = Field(..., min_length=1, description="Method name")
    fixture_id: str = Field(..., min_length=1, description="Identifier of the declaring fixture")
    fixture_name: str = Field(..., min_length=1, description="Class name of the declaring fixture")
    markers: MethodMarkers = Field(default_factory=MethodMarkers)

    @property
    def is_prerequisite(self) -> bool:
        return self.markers.is_prerequisite

    @property
    def qualified_name(self) -> str:
        return f"{self.fixture_name}.{self.name}"


class MethodMetadata(BaseModel):
    """Display metadata attached to a test method at registration time."""

    model_config = {"frozen": True, "extra": "forbid"}

    description: str = Field(default="", description="Natural language test description")
    categories: tuple[str, ...] = Field(default=(), description="Categories of the test")


class FlowBehavior(str, Enum):
    """What the caller should do with an exception after classification.

    - CONTINUE: not handled, let it propagate unchanged
    - RETHROW: handled, re-raise the original exception
    - THROW: raise the replacement exception instead
    """

    CONTINUE = "continue"
    RETHROW = "rethrow"
    THROW = "throw"


@dataclass(frozen=True)
class Translation:
    """Outcome of classifying an exception raised by a test method."""

    flow: FlowBehavior
    exception: BaseException

    @property
    def replaced(self) -> bool:
        return self.flow is FlowBehavior.THROW
