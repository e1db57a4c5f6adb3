"""
Registry of fixture nodes forming the fixture ownership tree.

Each ContextSpecification subclass registers one FixtureNode when it is
created. The naming service walks this tree instead of the class hierarchy.
"""

from collections.abc import Iterator

from contextspec.exceptions import FixtureNotRegisteredError
from contextspec.execution.models import FixtureNode
from contextspec.log import get_logger

logger = get_logger(__name__)


class FixtureTree:
    """Central registry of FixtureNode instances keyed by fixture identifier.

    Registering an identifier twice replaces the previous node, which happens
    when a test module is imported again under the same name.

    Example:
        >>> tree = FixtureTree()
        >>> tree.register(FixtureNode(fixture_id="m.Cart_Base", name="Cart_Base"))
        >>> tree.register(
        ...     FixtureNode(fixture_id="m.WhenEmpty", name="WhenEmpty", parent_id="m.Cart_Base")
        ... )
        >>> [node.name for node in tree.lineage("m.WhenEmpty")]
        ['WhenEmpty', 'Cart_Base']
    """

    def __init__(self) -> None:
        """Initialize an empty fixture tree."""
        self._nodes: dict[str, FixtureNode] = {}

    def register(self, node: FixtureNode) -> None:
        """Register a fixture node, replacing any node with the same identifier."""
        if node.fixture_id in self._nodes:
            logger.debug("fixture_reregistered", fixture_id=node.fixture_id)
        self._nodes[node.fixture_id] = node

    def get(self, fixture_id: str) -> FixtureNode:
        """Retrieve a fixture node by identifier.

        Raises:
            FixtureNotRegisteredError: If the identifier is unknown.
        """
        if fixture_id not in self._nodes:
            raise FixtureNotRegisteredError(fixture_id)
        return self._nodes[fixture_id]

    def parent(self, fixture_id: str) -> FixtureNode | None:
        """Return the parent node, or None when the parent is the root sentinel."""
        node = self.get(fixture_id)
        if node.parent_id is None:
            return None
        return self.get(node.parent_id)

    def lineage(self, fixture_id: str) -> list[FixtureNode]:
        """Return the node and all of its ancestors, closest first, excluding the root."""
        result: list[FixtureNode] = []
        node: FixtureNode | None = self.get(fixture_id)
        while node is not None:
            result.append(node)
            node = self.get(node.parent_id) if node.parent_id is not None else None
        return result

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, fixture_id: object) -> bool:
        return fixture_id in self._nodes

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __repr__(self) -> str:
        return f"FixtureTree({len(self._nodes)} fixtures)"


fixture_tree = FixtureTree()
"""Process-wide tree populated by ContextSpecification subclasses."""


def fixture_id_of(fixture: type) -> str:
    """Return the identifier under which ``fixture`` is registered."""
    return f"{fixture.__module__}.{fixture.__qualname__}"
