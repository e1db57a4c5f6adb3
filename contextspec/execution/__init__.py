"""
Contextspec Execution Engine.

Method markers, classification, prerequisite orchestration and exception
translation for context specifications.
"""

from contextspec.execution.classifier import MethodClassifier
from contextspec.execution.markers import (
    MethodMarker,
    MethodMarkers,
    category,
    description,
    do_not_call_because,
    exception_resilient,
    expected_exception,
    get_markers,
    prerequisite,
    test,
)
from contextspec.execution.models import (
    FixtureNode,
    FlowBehavior,
    MethodMetadata,
    TestMethodInfo,
    Translation,
)
from contextspec.execution.orchestrator import (
    PrerequisiteGuard,
    PrerequisiteOrchestrator,
    default_orchestrator,
)
from contextspec.execution.registry import FixtureTree, fixture_id_of, fixture_tree
from contextspec.execution.translator import ExceptionTranslator
from contextspec.execution.specification import (
    ContextSpecification,
    fixture_description,
    fixture_metadata,
)

__all__ = [
    # Markers
    "MethodMarker",
    "MethodMarkers",
    "category",
    "description",
    "do_not_call_because",
    "exception_resilient",
    "expected_exception",
    "get_markers",
    "prerequisite",
    "test",
    # Models
    "FixtureNode",
    "FlowBehavior",
    "MethodMetadata",
    "TestMethodInfo",
    "Translation",
    # Fixture tree
    "FixtureTree",
    "fixture_id_of",
    "fixture_tree",
    # Execution
    "ContextSpecification",
    "ExceptionTranslator",
    "MethodClassifier",
    "PrerequisiteGuard",
    "PrerequisiteOrchestrator",
    "default_orchestrator",
    "fixture_description",
    "fixture_metadata",
]
