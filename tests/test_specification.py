"""
Tests for contextspec.execution.specification module.

End-to-end scenarios: fixtures are real ContextSpecification subclasses,
declared inside each test so the plugin does not collect them, and driven
through the same setup/test/teardown sequence pytest uses.
"""

from typing import TypeVar

import pytest

from contextspec import (
    ContextSpecification,
    PrerequisiteFailureError,
    category,
    description,
    do_not_call_because,
    exception_resilient,
    expected_exception,
    prerequisite,
    test,
)
from contextspec.execution.orchestrator import ENTRY_ATTRIBUTE
from contextspec.execution.registry import fixture_id_of, fixture_tree
from contextspec.execution.specification import fixture_description, fixture_metadata

T = TypeVar("T")


class Cart:
    """Minimal subject under test."""

    def __init__(self) -> None:
        self.items: list[tuple[str, int]] = []

    def add(self, name: str, price: int) -> None:
        self.items.append((name, price))

    @property
    def total(self) -> int:
        return sum(price for _, price in self.items)


class BrokenCart(Cart):
    """Cart whose add() silently drops the item."""

    def add(self, name: str, price: int) -> None:
        pass


def prepare(fixture: type) -> ContextSpecification:
    """Create and arrange a fixture instance like pytest does."""
    instance = fixture()
    instance.setup_method(None)
    return instance


# =============================================================================
# Prerequisite Cascade Tests
# =============================================================================


class TestPrerequisiteCascade:
    """Tests for Because and prerequisite execution."""

    def test_because_runs_exactly_once(self) -> None:
        """Because runs once per outer test even with several prerequisites."""

        class WhenAddingTwoItems(ContextSpecification[Cart]):
            def create_subject_under_test(self) -> Cart:
                return Cart()

            def arrange(self) -> None:
                self.calls: list[str] = []

            def because(self) -> None:
                self.calls.append("because")
                self.sut.add("apple", 10)
                self.sut.add("pear", 5)

            @prerequisite
            def it_should_contain_two_items(self) -> None:
                self.calls.append("two items")
                assert len(self.sut.items) == 2, "Expected 2 items"

            @prerequisite
            def it_should_contain_an_apple(self) -> None:
                self.calls.append("apple")
                assert ("apple", 10) in self.sut.items, "Expected an apple"

            @test
            def it_should_have_a_total_of_fifteen(self) -> None:
                self.calls.append("body")
                assert self.sut.total == 15

        spec = prepare(WhenAddingTwoItems)
        spec.it_should_have_a_total_of_fifteen()

        assert spec.calls.count("because") == 1
        assert spec.calls[0] == "because"
        assert spec.calls[-1] == "body"
        assert set(spec.calls[1:-1]) == {"two items", "apple"}
        assert spec.sut.total == 15

    def test_prerequisite_run_on_its_own(self) -> None:
        """Running a prerequisite directly runs Because but no cascade."""

        class WhenAddingAnItem(ContextSpecification[Cart]):
            def create_subject_under_test(self) -> Cart:
                return Cart()

            def arrange(self) -> None:
                self.calls: list[str] = []

            def because(self) -> None:
                self.calls.append("because")
                self.sut.add("apple", 10)

            @prerequisite
            def it_should_contain_one_item(self) -> None:
                self.calls.append("one item")
                assert len(self.sut.items) == 1, "Expected 1 item"

            @prerequisite
            def it_should_contain_an_apple(self) -> None:
                self.calls.append("apple")

        spec = prepare(WhenAddingAnItem)
        spec.it_should_contain_one_item()
        assert spec.calls == ["because", "one item"]

    def test_cascade_flag_visible_to_prerequisites(self) -> None:
        """are_prerequisite_tests_running is True only inside the cascade."""

        class WhenObservingTheFlag(ContextSpecification):
            def arrange(self) -> None:
                self.observed: list[bool] = []

            @prerequisite
            def it_sees_the_flag(self) -> None:
                self.observed.append(self.are_prerequisite_tests_running)

            @test
            def it_runs(self) -> None:
                self.observed.append(self.are_prerequisite_tests_running)

        spec = prepare(WhenObservingTheFlag)
        assert not spec.are_prerequisite_tests_running
        spec.it_runs()
        assert spec.observed == [True, False]

    def test_failing_prerequisite_is_relabelled(self) -> None:
        """A failing prerequisite aborts the dependent test with a clear message."""

        class GivenACart(ContextSpecification[Cart]):
            def create_subject_under_test(self) -> Cart:
                return BrokenCart()

            def arrange(self) -> None:
                self.reached = False

            def because(self) -> None:
                self.sut.add("apple", 10)

            @prerequisite
            def add_item(self) -> None:
                assert len(self.sut.items) == 1, "Expected 1 item"

            @test
            def check_total(self) -> None:
                self.reached = True
                assert self.sut.total == 10, "Expected 10"

        spec = prepare(GivenACart)
        with pytest.raises(PrerequisiteFailureError) as exc_info:
            spec.check_total()

        assert str(exc_info.value).startswith("Prerequisite failed: GivenACart.add_item")
        assert "Expected 1 item" in str(exc_info.value)
        assert not spec.reached
        assert not spec.are_prerequisite_tests_running

    def test_failing_primary_assertion_is_not_relabelled(self) -> None:
        """A failing primary assertion keeps its own message."""

        class WhenCheckingTheTotal(ContextSpecification[Cart]):
            def create_subject_under_test(self) -> Cart:
                return Cart()

            @test
            def it_should_have_a_total(self) -> None:
                assert self.sut.total == 10, "Expected a total of 10"

        spec = prepare(WhenCheckingTheTotal)
        with pytest.raises(AssertionError) as exc_info:
            spec.it_should_have_a_total()
        assert not isinstance(exc_info.value, PrerequisiteFailureError)
        assert str(exc_info.value).startswith("Expected a total of 10")

    def test_failing_because_is_not_relabelled(self) -> None:
        """An assertion in Because is not reported as a prerequisite failure."""

        class WhenBecauseFails(ContextSpecification):
            def because(self) -> None:
                assert False, "Expected because to succeed"

            @prerequisite
            def it_is_ready(self) -> None:
                pass

        spec = prepare(WhenBecauseFails)
        with pytest.raises(AssertionError) as exc_info:
            spec.it_is_ready()
        assert not isinstance(exc_info.value, PrerequisiteFailureError)
        assert str(exc_info.value).startswith("Expected because to succeed")

    def test_inherited_prerequisites_run_for_derived_fixture(self) -> None:
        """Prerequisites of a base fixture run under the derived fixture's Because."""

        class GivenAnOpenCart(ContextSpecification[Cart]):
            def create_subject_under_test(self) -> Cart:
                return Cart()

            def arrange(self) -> None:
                self.calls: list[str] = []

            @prerequisite
            def it_should_be_empty_before_acting(self) -> None:
                self.calls.append("base prerequisite")

        class WhenAddingAnItem(GivenAnOpenCart):
            def because(self) -> None:
                self.calls.append("because")
                self.sut.add("apple", 10)

            @test
            def it_should_have_one_item(self) -> None:
                self.calls.append("body")
                assert len(self.sut.items) == 1

        spec = prepare(WhenAddingAnItem)
        spec.it_should_have_one_item()
        assert spec.calls == ["because", "base prerequisite", "body"]

    def test_do_not_call_because(self) -> None:
        """Tests marked do-not-call-Because run their body only."""

        class WhenSkippingBecause(ContextSpecification):
            def arrange(self) -> None:
                self.because_calls = 0

            def because(self) -> None:
                self.because_calls += 1

            @test
            @do_not_call_because
            def it_runs_without_acting(self) -> None:
                assert self.because_calls == 0

        spec = prepare(WhenSkippingBecause)
        spec.it_runs_without_acting()
        assert spec.because_calls == 0
        assert not hasattr(vars(WhenSkippingBecause)["it_runs_without_acting"], ENTRY_ATTRIBUTE)


# =============================================================================
# Expected Exception Tests
# =============================================================================


class TestExpectedExceptions:
    """Tests for expected exceptions and the exception-resilient strategy."""

    def test_expected_exception_tolerated_by_siblings(self) -> None:
        """Siblings of an expecting test run their body despite Because failing."""

        class WhenDividingByZero(ContextSpecification):
            def arrange(self) -> None:
                self.logged = False

            def because(self) -> None:
                self.logged = True
                raise ValueError("division by zero")

            @test
            @expected_exception(ValueError)
            def it_should_raise(self) -> None:
                pass

            @test
            def it_should_log_the_attempt(self) -> None:
                assert self.logged

        assert getattr(WhenDividingByZero.it_should_log_the_attempt, ENTRY_ATTRIBUTE) == "resilient"

        prepare(WhenDividingByZero).it_should_raise()
        spec = prepare(WhenDividingByZero)
        assert spec.it_should_log_the_attempt() is None
        assert spec.logged

    def test_unmatched_exception_propagates_after_body(self) -> None:
        """An exception of another type is rethrown once the body has run."""

        class WhenLookingUpAMissingKey(ContextSpecification):
            def arrange(self) -> None:
                self.body_ran = False

            def because(self) -> None:
                raise KeyError("missing")

            @test
            @expected_exception(ValueError)
            def it_should_raise(self) -> None:
                pass

            @test
            def it_should_still_run(self) -> None:
                self.body_ran = True

        spec = prepare(WhenLookingUpAMissingKey)
        with pytest.raises(KeyError):
            spec.it_should_still_run()
        assert spec.body_ran

        with pytest.raises(KeyError):
            prepare(WhenLookingUpAMissingKey).it_should_raise()

    def test_expected_exception_without_type_matches_anything(self) -> None:
        """A None expectation tolerates any exception."""

        class WhenAnythingFails(ContextSpecification):
            def because(self) -> None:
                raise RuntimeError("anything")

            @test
            @expected_exception()
            def it_should_raise(self) -> None:
                pass

            @test
            def it_should_continue(self) -> None:
                pass

        prepare(WhenAnythingFails).it_should_raise()
        prepare(WhenAnythingFails).it_should_continue()

    def test_expecting_test_fails_without_exception(self) -> None:
        """An expecting test fails when nothing is raised."""

        class WhenNothingFails(ContextSpecification):
            @test
            @expected_exception(ValueError)
            def it_should_raise(self) -> None:
                pass

        with pytest.raises(AssertionError, match="Expected ValueError to be raised"):
            prepare(WhenNothingFails).it_should_raise()

    def test_explicit_resilience_without_expectations(self) -> None:
        """An explicitly resilient test rethrows untolerated entry errors after its body."""

        class WhenMarkedResilient(ContextSpecification):
            def arrange(self) -> None:
                self.body_ran = False

            def because(self) -> None:
                raise ValueError("boom")

            @test
            @exception_resilient
            def it_is_resilient(self) -> None:
                self.body_ran = True

        spec = prepare(WhenMarkedResilient)
        with pytest.raises(ValueError):
            spec.it_is_resilient()
        assert spec.body_ran


# =============================================================================
# Registration and Naming Tests
# =============================================================================


class TestRegistration:
    """Tests for the registration pass and generated metadata."""

    def test_subject_created_after_arrange(self) -> None:
        class GivenAnEmptyCart(ContextSpecification[Cart]):
            def arrange(self) -> None:
                self.order = ["arrange"]

            def create_subject_under_test(self) -> Cart:
                self.order.append("subject")
                return Cart()

        spec = prepare(GivenAnEmptyCart)
        assert spec.order == ["arrange", "subject"]
        assert isinstance(spec.sut, Cart)

    def test_cleanup_runs_on_teardown(self) -> None:
        class GivenAResource(ContextSpecification):
            def arrange(self) -> None:
                self.released = False

            def cleanup(self) -> None:
                self.released = True

        spec = prepare(GivenAResource)
        spec.teardown_method(None)
        assert spec.released

    def test_fixture_registered_in_tree(self) -> None:
        class Cart_Base(ContextSpecification[Cart]):
            pass

        class GivenAnEmptyCart(Cart_Base):
            pass

        node = fixture_tree.get(fixture_id_of(GivenAnEmptyCart))
        assert node.name == "GivenAnEmptyCart"
        assert node.parent_id == fixture_id_of(Cart_Base)
        assert fixture_tree.get(fixture_id_of(Cart_Base)).tested_subject_name == "Cart"
        assert fixture_tree.get(fixture_id_of(Cart_Base)).parent_id is None

    def test_generated_description_and_category(self) -> None:
        """Descriptions come from the ancestor chain and the subject."""

        class Cart_Base(ContextSpecification[Cart]):
            pass

        class GivenAnEmptyCart(Cart_Base):
            @test
            def it_should_have_zero_total(self) -> None:
                pass

        metadata = fixture_metadata(GivenAnEmptyCart)["it_should_have_zero_total"]
        assert metadata.categories == ("Specifications for Cart",)
        assert metadata.description == (
            "Test case for Cart:\n\tGiven an empty cart,\n\t\tIt should have zero total.\n\n"
        )
        assert fixture_description(GivenAnEmptyCart) == "Given an empty cart"

    def test_base_suffix_excluded_from_context(self) -> None:
        """Names ending with _Base are skipped; the root-most name is the subject."""

        class Root(ContextSpecification):
            pass

        class Mid_Base(Root):
            pass

        class Leaf(Mid_Base):
            @test
            def it_works(self) -> None:
                pass

        assert fixture_description(Leaf) == "Root, Leaf"
        assert fixture_metadata(Leaf)["it_works"].categories == ("Specifications for Root",)

    def test_parameterized_base_stops_chain(self) -> None:
        """A generic subject-under-test base ends the context description."""

        class SpecificationFor(ContextSpecification[T]):
            pass

        class GivenAFullCart(SpecificationFor[Cart]):
            pass

        class WhenCheckingOut(GivenAFullCart):
            @test
            def it_should_empty_the_cart(self) -> None:
                pass

        assert fixture_tree.get(fixture_id_of(SpecificationFor)).is_parameterized
        assert fixture_description(WhenCheckingOut) == "Given a full cart, When checking out"
        metadata = fixture_metadata(WhenCheckingOut)["it_should_empty_the_cart"]
        assert metadata.categories == ("Specifications for Cart",)

    def test_subject_class_keyword(self) -> None:
        class GivenAnInvoice(ContextSpecification, subject="Invoice"):
            @test
            def it_is_described(self) -> None:
                pass

        categories = fixture_metadata(GivenAnInvoice)["it_is_described"].categories
        assert categories == ("Specifications for Invoice",)

    def test_explicit_description_and_category_win(self) -> None:
        class GivenAnEmptyCart(ContextSpecification[Cart]):
            description = "A cart with nothing in it"

            @test
            @category("Slow")
            def it_should_have_zero_total(self) -> None:
                pass

        class WhenAddingAnItem(GivenAnEmptyCart):
            @test
            @description("Adding an item updates the total")
            def it_should_update_the_total(self) -> None:
                pass

        assert fixture_description(GivenAnEmptyCart) == "A cart with nothing in it"
        inherited = fixture_metadata(WhenAddingAnItem)
        assert inherited["it_should_have_zero_total"].categories == (
            "Slow",
            "Specifications for Cart",
        )
        assert inherited["it_should_update_the_total"].description == (
            "Adding an item updates the total"
        )
