"""
Natural language names for context specifications.

Builds context descriptions and category labels by walking the fixture
ownership tree:

    class Cart_Base(ContextSpecification[Cart]): ...
    class GivenAnEmptyCart(Cart_Base): ...
    class WhenAddingAnItem(GivenAnEmptyCart):
        @test
        def it_should_have_one_item(self): ...

    -> category:     "Specifications for Cart"
    -> context:      "Given an empty cart, When adding an item"
    -> description:  "Test case for Cart:\\n\\tGiven an empty cart, When adding an item,"
                     "\\n\\t\\tIt should have one item.\\n\\n"

All operations are pure and run once per fixture or method at registration.
"""

import inflection

from contextspec.config import get_config
from contextspec.execution.models import FixtureNode, MethodMetadata, TestMethodInfo
from contextspec.execution.registry import FixtureTree, fixture_tree


def humanize(identifier: str) -> str:
    """Turn an identifier into a sentence-cased phrase.

    Acronyms of two or more capitals keep their case.

    Example:
        >>> humanize("GivenAnEmptyCart")
        'Given an empty cart'
        >>> humanize("it_should_have_zero_total")
        'It should have zero total'
        >>> humanize("WhenParsingHTTPRequest")
        'When parsing HTTP request'
    """
    lowered = identifier.lower()
    position = 0
    words: list[str] = []
    for token in inflection.underscore(identifier).split("_"):
        if not token:
            continue
        start = lowered.find(token, position)
        if start < 0:
            words.append(token)
            continue
        position = start + len(token)
        original = identifier[start:position]
        words.append(original if len(original) > 1 and original.isupper() else token)
    phrase = " ".join(words)
    return phrase[:1].upper() + phrase[1:]


class ContextNamingService:
    """Builds descriptions and categories from the fixture tree.

    Args:
        tree: Fixture tree to walk. Defaults to the process-wide tree.
        base_suffix: Name suffix excluded from context descriptions.
        category_template: Template for category labels.
    """

    def __init__(
        self,
        tree: FixtureTree | None = None,
        base_suffix: str | None = None,
        category_template: str | None = None,
    ) -> None:
        self.tree = tree if tree is not None else fixture_tree
        self._base_suffix = base_suffix
        self._category_template = category_template

    @property
    def base_suffix(self) -> str:
        if self._base_suffix is not None:
            return self._base_suffix
        return get_config().base_suffix

    @property
    def category_template(self) -> str:
        if self._category_template is not None:
            return self._category_template
        return get_config().category_template

    def get_ancestor_chain(self, fixture_id: str) -> list[FixtureNode]:
        """Return the fixture and its ancestors, closest first.

        The walk stops below the root sentinel and at the first parameterized
        ancestor, which is excluded together with everything above it.
        """
        chain: list[FixtureNode] = []
        node: FixtureNode | None = self.tree.get(fixture_id)
        while node is not None:
            if node.is_parameterized:
                break
            chain.append(node)
            node = self.tree.parent(node.fixture_id)
        return chain

    def build_context_description(self, fixture_id: str) -> str:
        """Join the humanized ancestor names, root-most first.

        Names ending with the base suffix are left out.
        """
        suffix = self.base_suffix
        parts = [
            humanize(node.name)
            for node in reversed(self.get_ancestor_chain(fixture_id))
            if not (suffix and node.name.endswith(suffix))
        ]
        return ", ".join(parts)

    def build_category_label(self, tested_subject_name: str) -> str:
        return self.category_template.format(subject=tested_subject_name)

    def tested_subject_name(self, fixture_id: str) -> str:
        """Return the subject declared by the fixture or its nearest ancestor.

        Falls back to the name of the root-most fixture of the ancestor chain.
        """
        lineage = self.tree.lineage(fixture_id)
        for node in lineage:
            if node.tested_subject_name:
                return node.tested_subject_name
        chain = self.get_ancestor_chain(fixture_id)
        return (chain or lineage)[-1].name

    def build_method_description(self, method: TestMethodInfo) -> str:
        """Describe a test method as a natural language sentence."""
        return "Test case for {}:\n\t{},\n\t\t{}.\n\n".format(
            self.tested_subject_name(method.fixture_id),
            self.build_context_description(method.fixture_id),
            humanize(method.name),
        )

    def describe_fixture(self, fixture_id: str) -> str:
        """Return the explicit fixture description, or the generated context description."""
        node = self.tree.get(fixture_id)
        return node.description or self.build_context_description(fixture_id)

    def describe_method(self, method: TestMethodInfo) -> MethodMetadata:
        """Build the display metadata of a test method.

        Explicit descriptions win over generated ones; the subject category is
        added unless it is already declared.
        """
        label = self.build_category_label(self.tested_subject_name(method.fixture_id))
        categories = method.markers.categories
        if label not in categories:
            categories = categories + (label,)
        return MethodMetadata(
            description=method.markers.description or self.build_method_description(method),
            categories=categories,
        )
