"""Domain service resolving a planner selection into leaves and pivot groups."""

from typing import Dict, Iterable, List, Optional

import structlog

from forecast_recon.domain.entities.errors import InvalidSelectionError
from forecast_recon.domain.entities.hierarchy import (
    DimensionSelection,
    HierarchyLevel,
    HierarchySnapshot,
    ResolvedSelection,
)

logger = structlog.get_logger(__name__)

LEVEL_PARENT: Dict[HierarchyLevel, HierarchyLevel] = {
    HierarchyLevel.SUBCATEGORY: HierarchyLevel.CATEGORY,
    HierarchyLevel.SUBCLASS: HierarchyLevel.SUBCATEGORY,
    HierarchyLevel.CLASS: HierarchyLevel.SUBCLASS,
    HierarchyLevel.PRODUCT: HierarchyLevel.CLASS,
}


def locate_node(snapshot: HierarchySnapshot, selection: DimensionSelection) -> int:
    """Walk the selection path and return the index of its deepest node."""
    if not selection.category:
        raise InvalidSelectionError("A category must be selected.")

    current = snapshot.root(selection.category)
    if current is None:
        raise InvalidSelectionError(
            f"Category '{selection.category}' does not exist.",
            details={"category": selection.category},
        )

    for level, name in selection.path()[1:]:
        parent = snapshot.node(current)
        expected_parent_level = LEVEL_PARENT[level]
        if parent.level == expected_parent_level:
            found = snapshot.find_child(current, name)
            candidates = [found] if found is not None else []
        else:
            # Levels skipped in the selection are searched below the last match.
            candidates = snapshot.find_descendants(current, level, name)

        if not candidates:
            raise InvalidSelectionError(
                f"{level.value.capitalize()} '{name}' does not exist under "
                f"{parent.level.value} '{parent.name}'.",
                details={"level": level.value, "name": name, "parent": parent.name},
            )
        if len(candidates) > 1:
            raise InvalidSelectionError(
                f"{level.value.capitalize()} '{name}' is ambiguous under "
                f"{parent.level.value} '{parent.name}'.",
                details={"level": level.value, "name": name, "matches": len(candidates)},
            )
        current = candidates[0]

    return current


def resolve(
    snapshot: HierarchySnapshot,
    selection: DimensionSelection,
    metrics: Optional[Iterable[str]] = None,
) -> ResolvedSelection:
    """
    Resolve a selection into its leaf products and the child groups to show.

    Child groups are the immediate children of the deepest selected node that
    contain at least one product with data for `metrics`; groups without data
    never appear in the pivot. Groups are returned sorted by name.

    Raises:
        InvalidSelectionError: No category, or a named node that does not
            exist (or is ambiguous) in the snapshot.
    """
    metric_list: Optional[List[str]] = list(metrics) if metrics is not None else None
    node_idx = locate_node(snapshot, selection)
    node = snapshot.node(node_idx)
    child_level = node.level.child or HierarchyLevel.PRODUCT

    leaf_ids = snapshot.leaves(node_idx)
    group_of_product: Dict[str, str] = {}
    groups_with_data = set()
    for child_idx in snapshot.children(node_idx):
        child = snapshot.node(child_idx)
        for product_id in snapshot.leaves(child_idx):
            group_of_product[product_id] = child.name
            if snapshot.has_data(product_id, metric_list):
                groups_with_data.add(child.name)

    resolved = ResolvedSelection(
        level=node.level,
        child_level=child_level,
        leaf_product_ids=frozenset(leaf_ids),
        child_groups=tuple(sorted(groups_with_data)),
        group_of_product=group_of_product,
    )

    logger.debug(
        "hierarchy.resolved",
        level=node.level.value,
        name=node.name,
        leaves=len(resolved.leaf_product_ids),
        child_groups=len(resolved.child_groups),
    )
    return resolved
