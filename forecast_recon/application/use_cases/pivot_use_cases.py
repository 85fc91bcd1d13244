"""
Pivot Use Cases - Application Layer

This module defines use cases behind the planner pivot grid: building the
pivot for a hierarchy selection and applying a fair-share edit of a total
cell.
"""

from typing import Iterable, List, Optional, Sequence, Set

import structlog

from forecast_recon.domain.entities.hierarchy import HierarchySnapshot
from forecast_recon.domain.entities.time_series import (
    EntityKey,
    SeriesName,
    TimeSeriesPoint,
)
from forecast_recon.domain.services.fair_share import (
    DEFAULT_EDITABLE_SERIES,
    apply_aggregate_edit,
)
from forecast_recon.domain.services.hierarchy_resolver import resolve
from forecast_recon.domain.services.series_aggregator import (
    aggregate,
    normalise_definitions,
)

from ..dtos.pivot_dto import (
    AggregateEditRequestDTO,
    AggregateEditResponseDTO,
    PivotRequestDTO,
    PivotResponseDTO,
    PivotRowDTO,
)

logger = structlog.get_logger(__name__)


class BuildPivotUseCase:
    """Use case for building the pivot rows of a hierarchy selection."""

    def execute(
        self,
        request: PivotRequestDTO,
        hierarchy: HierarchySnapshot,
        points: Iterable[TimeSeriesPoint],
    ) -> PivotResponseDTO:
        """
        Build the pivot for a selection.

        Args:
            request: Selection and optional series definitions
            hierarchy: Product hierarchy with per-product metric presence
            points: Raw points of (at least) the selected products

        Returns:
            The pivot rows, total first for every series

        Raises:
            InvalidSelectionError: If the selection does not exist in the hierarchy
        """
        definitions = normalise_definitions(request.series_definitions)
        metrics = sorted({metric for _, metric in definitions})
        resolved = resolve(hierarchy, request.to_selection(), metrics=metrics)
        shown: Set[str] = set(resolved.child_groups)

        def group_of(key: EntityKey) -> Optional[str]:
            return resolved.group_of(key.product_id)

        # Products of groups without data never reach the pivot.
        selected = [
            point
            for point in points
            if point.entity_key.product_id in resolved.leaf_product_ids
            and resolved.group_of(point.entity_key.product_id) in shown
        ]
        rows = aggregate(
            selected,
            group_of,
            series_definitions=dict(definitions),
            groups=resolved.child_groups,
        )
        dates = sorted({iso_date for row in rows for iso_date in row.values})

        logger.info(
            "pivot.built",
            level=resolved.level.value,
            child_groups=len(resolved.child_groups),
            leaves=len(resolved.leaf_product_ids),
            rows=len(rows),
        )
        return PivotResponseDTO(
            level=resolved.level.value,
            child_level=resolved.child_level.value,
            child_groups=list(resolved.child_groups),
            dates=dates,
            rows=[PivotRowDTO.from_entity(row) for row in rows],
            leaf_count=len(resolved.leaf_product_ids),
        )


class ApplyAggregateEditUseCase:
    """Use case for pushing an edited total cell down to its child rows."""

    def __init__(self, editable_series: Sequence[SeriesName] = DEFAULT_EDITABLE_SERIES):
        """
        Args:
            editable_series: Series whose total cells accept edits
        """
        self.editable_series: List[SeriesName] = [SeriesName(s) for s in editable_series]

    def execute(
        self, rows: Sequence[PivotRowDTO], request: AggregateEditRequestDTO
    ) -> AggregateEditResponseDTO:
        """
        Apply the edit and return the updated grid.

        Raises:
            NonEditableCellError: If the cell does not accept aggregate edits
            InsufficientDataError: If no child row carries a value for the date
        """
        result = apply_aggregate_edit(
            [row.to_entity() for row in rows],
            request.date,
            request.new_value,
            series=request.series,
            editable_series=self.editable_series,
        )
        return AggregateEditResponseDTO(
            rows=[PivotRowDTO.from_entity(row) for row in result.rows],
            aggregate_delta=result.aggregate_delta,
            updated_cells=sorted(result.updated_cells),
        )
