"""
Domain Entities - Product Hierarchy

The product dimension tree (category > subcategory > subclass > class >
product) is held as an arena: nodes live in one list, children are indices
into it, and the parent is kept only as a name for display. Snapshots are
built per request and never mutated after construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple

from forecast_recon.shared.consts import UNASSIGNED_PREFIX


class HierarchyLevel(str, Enum):
    """Levels of the product hierarchy, root first."""

    CATEGORY = "category"
    SUBCATEGORY = "subcategory"
    SUBCLASS = "subclass"
    CLASS = "class"
    PRODUCT = "product"

    @property
    def child(self) -> Optional["HierarchyLevel"]:
        position = LEVELS.index(self)
        if position + 1 < len(LEVELS):
            return LEVELS[position + 1]
        return None

    @property
    def placeholder(self) -> str:
        """Name given to a product whose catalog row leaves this level empty."""
        return f"{UNASSIGNED_PREFIX} {self.value}"


LEVELS: Tuple[HierarchyLevel, ...] = tuple(HierarchyLevel)


@dataclass(slots=True)
class DimensionNode:
    """A node of the hierarchy arena."""

    level: HierarchyLevel
    name: str
    parent: Optional[str] = None
    children: List[int] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class DimensionSelection:
    """A partial path down the hierarchy, as picked in the planner filters."""

    category: Optional[str] = None
    subcategory: Optional[str] = None
    subclass: Optional[str] = None
    class_name: Optional[str] = None

    def path(self) -> List[Tuple[HierarchyLevel, str]]:
        steps = [
            (HierarchyLevel.CATEGORY, self.category),
            (HierarchyLevel.SUBCATEGORY, self.subcategory),
            (HierarchyLevel.SUBCLASS, self.subclass),
            (HierarchyLevel.CLASS, self.class_name),
        ]
        return [(level, name) for level, name in steps if name]


@dataclass(frozen=True, slots=True)
class ResolvedSelection:
    """Leaves represented by a selection and the child groups to pivot on."""

    level: HierarchyLevel
    child_level: HierarchyLevel
    leaf_product_ids: FrozenSet[str]
    child_groups: Tuple[str, ...]
    group_of_product: Mapping[str, str] = field(default_factory=dict)

    def group_of(self, product_id: str) -> Optional[str]:
        return self.group_of_product.get(product_id)


@dataclass(frozen=True, slots=True)
class ProductHierarchyRow:
    """A product catalog row with its hierarchy names."""

    product_id: str
    category: Optional[str] = None
    subcategory: Optional[str] = None
    subclass: Optional[str] = None
    class_name: Optional[str] = None

    def names(self) -> List[Tuple[HierarchyLevel, str]]:
        return [
            (HierarchyLevel.CATEGORY, self.category or HierarchyLevel.CATEGORY.placeholder),
            (
                HierarchyLevel.SUBCATEGORY,
                self.subcategory or HierarchyLevel.SUBCATEGORY.placeholder,
            ),
            (HierarchyLevel.SUBCLASS, self.subclass or HierarchyLevel.SUBCLASS.placeholder),
            (HierarchyLevel.CLASS, self.class_name or HierarchyLevel.CLASS.placeholder),
        ]


class HierarchySnapshot:
    """Read-only product hierarchy plus per-product metric presence."""

    def __init__(
        self,
        nodes: List[DimensionNode],
        roots: Dict[str, int],
        presence: Optional[Mapping[str, FrozenSet[str]]] = None,
    ):
        self._nodes = nodes
        self._roots = roots
        self._presence: Dict[str, FrozenSet[str]] = dict(presence or {})

    @classmethod
    def from_products(
        cls,
        rows: Iterable[ProductHierarchyRow],
        presence: Optional[Mapping[str, Iterable[str]]] = None,
    ) -> "HierarchySnapshot":
        """Build the arena from catalog rows; duplicate product rows are ignored."""
        nodes: List[DimensionNode] = []
        roots: Dict[str, int] = {}
        index: Dict[Tuple[int, str], int] = {}
        seen_products: set[str] = set()

        def child_index(parent_idx: Optional[int], level: HierarchyLevel, name: str) -> int:
            if parent_idx is None:
                if name not in roots:
                    nodes.append(DimensionNode(level=level, name=name))
                    roots[name] = len(nodes) - 1
                return roots[name]
            key = (parent_idx, name)
            if key not in index:
                parent = nodes[parent_idx]
                nodes.append(DimensionNode(level=level, name=name, parent=parent.name))
                index[key] = len(nodes) - 1
                parent.children.append(index[key])
            return index[key]

        for row in rows:
            if not row.product_id or row.product_id in seen_products:
                continue
            seen_products.add(row.product_id)
            current: Optional[int] = None
            for level, name in row.names():
                current = child_index(current, level, name)
            child_index(current, HierarchyLevel.PRODUCT, row.product_id)

        frozen_presence = {
            product_id: frozenset(metrics)
            for product_id, metrics in (presence or {}).items()
        }
        return cls(nodes=nodes, roots=roots, presence=frozen_presence)

    def node(self, idx: int) -> DimensionNode:
        return self._nodes[idx]

    def root(self, name: str) -> Optional[int]:
        return self._roots.get(name)

    def children(self, idx: int) -> Iterator[int]:
        return iter(self._nodes[idx].children)

    def find_child(self, idx: int, name: str) -> Optional[int]:
        for child in self._nodes[idx].children:
            if self._nodes[child].name == name:
                return child
        return None

    def find_descendants(self, idx: int, level: HierarchyLevel, name: str) -> List[int]:
        """All nodes named `name` at `level` below `idx`."""
        found: List[int] = []
        stack = [idx]
        while stack:
            current = stack.pop()
            node = self._nodes[current]
            if node.level == level and node.name == name:
                found.append(current)
                continue
            if node.level != HierarchyLevel.PRODUCT:
                stack.extend(node.children)
        return sorted(found)

    def leaves(self, idx: int) -> List[str]:
        """Product ids under `idx`, in catalog order."""
        products: List[str] = []
        stack = [idx]
        while stack:
            node = self._nodes[stack.pop()]
            if node.level == HierarchyLevel.PRODUCT:
                products.append(node.name)
            else:
                stack.extend(reversed(node.children))
        return products

    def has_data(self, product_id: str, metrics: Optional[Iterable[str]] = None) -> bool:
        """Whether a product has non-null series data for any of `metrics`.

        With no metrics, any recorded metric counts.
        """
        available = self._presence.get(product_id, frozenset())
        if metrics is None:
            return bool(available)
        return any(metric in available for metric in metrics)

    def __len__(self) -> int:
        return len(self._nodes)
