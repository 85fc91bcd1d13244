"""
Time-series aggregation for the planner pivot.

Leaf series (one per product, customer and location) are summed into one row
per child group and series, plus a "Total Categoría" row per series computed
directly from the leaves. Sums are exact and fractional values come back as
`Decimal`, so the total always equals the sum of the group rows.
"""

from __future__ import annotations

from collections import defaultdict
from fractions import Fraction
from typing import (
    Callable,
    DefaultDict,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
)

import structlog

from forecast_recon.domain.entities.errors import AggregationInvariantViolation
from forecast_recon.domain.entities.hierarchy import (
    DimensionSelection,
    HierarchyLevel,
    HierarchySnapshot,
)
from forecast_recon.domain.entities.time_series import (
    SERIES_ORDER,
    AggregatedSeriesRow,
    EntityKey,
    RollupNode,
    SeriesName,
    TimeSeriesPoint,
)
from forecast_recon.domain.services.hierarchy_resolver import locate_node
from forecast_recon.domain.services.rounding import (
    to_decimal_fraction,
    to_exact_number,
    to_number,
)
from forecast_recon.shared.consts import TOTAL_GROUP_KEY, UNASSIGNED_PREFIX

logger = structlog.get_logger(__name__)

# Source metric (forecast_data column) behind each pivot series.
DEFAULT_SERIES_DEFINITIONS: Dict[SeriesName, str] = {
    SeriesName.SALES_HISTORY: "actual",
    SeriesName.FORECAST: "forecast",
    SeriesName.INITIAL_PLAN: "sales_plan",
    SeriesName.DEMAND_PLANNER: "forecast",
    SeriesName.SALES_LAST_YEAR: "forecast_ly",
    SeriesName.KAM_INPUT: "commercial_input",
    SeriesName.ADJUSTED_HISTORY: "actual",
}

UNGROUPED_KEY = f"{UNASSIGNED_PREFIX} grupo"

GroupOf = Callable[[EntityKey], Optional[str]]
SeriesDefinitions = Mapping[Union[SeriesName, str], str]

_Sums = DefaultDict[str, DefaultDict[str, Fraction]]


def normalise_definitions(
    series_definitions: Optional[SeriesDefinitions],
) -> List[Tuple[SeriesName, str]]:
    """Series definitions as (series, metric) pairs in render order."""
    raw = series_definitions if series_definitions is not None else DEFAULT_SERIES_DEFINITIONS
    by_series = {SeriesName(name): metric for name, metric in raw.items()}
    return [(series, by_series[series]) for series in SERIES_ORDER if series in by_series]


def _order_groups(
    supplied: Optional[Sequence[str]], seen: Iterable[str]
) -> List[str]:
    if supplied is None:
        return sorted(set(seen))
    ordered = list(dict.fromkeys(supplied))
    extra = sorted(set(seen) - set(ordered))
    if extra:
        logger.warning(
            "aggregator.unlisted_groups",
            groups=extra,
            detail="Leaves map to groups outside the supplied list; appended last.",
        )
    return ordered + extra


def aggregate(
    leaf_series: Iterable[TimeSeriesPoint],
    group_of: GroupOf,
    series_definitions: Optional[SeriesDefinitions] = None,
    groups: Optional[Sequence[str]] = None,
) -> List[AggregatedSeriesRow]:
    """
    Aggregate leaf series into pivot rows.

    Args:
        leaf_series: Raw points of every leaf under the selection.
        group_of: Maps a leaf to its child group name.
        series_definitions: Pivot series to source metric name. Defaults to
            the forecast_data columns used by the planner dashboard.
        groups: Child groups in render order. Groups reached by a leaf but not
            listed are appended after them, sorted by name.

    Returns:
        Rows ordered by series; for each series the total row first, then
        one row per group. Each row carries every date seen for the series'
        metric, ascending, with 0 where the group had nothing. Floats are read
        as the decimals they print as; non-integral sums are `Decimal`s.

    Raises:
        AggregationInvariantViolation: If a total differs from its groups.
    """
    definitions = normalise_definitions(series_definitions)
    wanted = {metric for _, metric in definitions}

    group_sums: Dict[str, _Sums] = {
        metric: defaultdict(lambda: defaultdict(Fraction)) for metric in wanted
    }
    total_sums: Dict[str, DefaultDict[str, Fraction]] = {
        metric: defaultdict(Fraction) for metric in wanted
    }
    dates: Dict[str, Set[str]] = {metric: set() for metric in wanted}
    seen_groups: Set[str] = set()
    group_cache: Dict[EntityKey, str] = {}

    point_count = 0
    for point in leaf_series:
        if point.metric_name not in wanted:
            continue
        point_count += 1
        iso_date = point.date.isoformat()
        dates[point.metric_name].add(iso_date)

        if point.entity_key not in group_cache:
            group_cache[point.entity_key] = group_of(point.entity_key) or UNGROUPED_KEY
        group = group_cache[point.entity_key]
        seen_groups.add(group)

        value = to_decimal_fraction(point.value)
        group_sums[point.metric_name][group][iso_date] += value
        total_sums[point.metric_name][iso_date] += value

    ordered_groups = _order_groups(groups, seen_groups)

    rows: List[AggregatedSeriesRow] = []
    for series, metric in definitions:
        metric_dates = sorted(dates[metric])
        totals = total_sums[metric]
        by_group = group_sums[metric]

        for iso_date in metric_dates:
            group_total = sum(
                (by_group[group].get(iso_date, Fraction(0)) for group in ordered_groups),
                Fraction(0),
            )
            if group_total != totals[iso_date]:
                raise AggregationInvariantViolation(
                    "Total row does not match the sum of its groups.",
                    details={
                        "series": series.value,
                        "date": iso_date,
                        "total": to_number(totals[iso_date]),
                        "groups": to_number(group_total),
                    },
                )

        rows.append(
            AggregatedSeriesRow(
                group_key=TOTAL_GROUP_KEY,
                series_name=series,
                values={
                    d: to_exact_number(totals.get(d, Fraction(0))) for d in metric_dates
                },
            )
        )
        for group in ordered_groups:
            sums = by_group.get(group, {})
            rows.append(
                AggregatedSeriesRow(
                    group_key=group,
                    series_name=series,
                    values={
                        d: to_exact_number(sums.get(d, Fraction(0)))
                        for d in metric_dates
                    },
                )
            )

    logger.info(
        "aggregator.completed",
        points=point_count,
        series=len(definitions),
        groups=len(ordered_groups),
        rows=len(rows),
    )
    return rows


def average_series(
    leaf_series: Iterable[TimeSeriesPoint],
    group_of: GroupOf,
    metric_name: str,
) -> Dict[str, Dict[str, float]]:
    """
    Mean of a metric per group and date over the leaves that reported it.

    Intended for ratio-like metrics (prices, rates) that must not be summed.
    Null values are skipped rather than counted as zero.
    """
    sums: _Sums = defaultdict(lambda: defaultdict(Fraction))
    counts: DefaultDict[str, DefaultDict[str, int]] = defaultdict(lambda: defaultdict(int))
    for point in leaf_series:
        if point.metric_name != metric_name or point.value is None:
            continue
        group = group_of(point.entity_key) or UNGROUPED_KEY
        iso_date = point.date.isoformat()
        sums[group][iso_date] += to_decimal_fraction(point.value)
        counts[group][iso_date] += 1

    return {
        group: {
            iso_date: float(total / counts[group][iso_date])
            for iso_date, total in sorted(by_date.items())
        }
        for group, by_date in sums.items()
    }


def rollup(
    snapshot: HierarchySnapshot,
    selection: DimensionSelection,
    leaf_series: Iterable[TimeSeriesPoint],
    metric_name: str,
) -> RollupNode:
    """
    Roll one metric up the hierarchy below a selection.

    Product values are the sum of their leaf series (all customers and
    locations); every other node is the exact sum of its immediate children.
    All nodes carry the same ascending set of dates.
    """
    node_idx = locate_node(snapshot, selection)

    product_sums: DefaultDict[str, DefaultDict[str, Fraction]] = defaultdict(
        lambda: defaultdict(Fraction)
    )
    all_dates: Set[str] = set()
    for point in leaf_series:
        if point.metric_name != metric_name:
            continue
        iso_date = point.date.isoformat()
        all_dates.add(iso_date)
        product_sums[point.entity_key.product_id][iso_date] += to_decimal_fraction(
            point.value
        )
    ordered_dates = sorted(all_dates)

    def build(idx: int) -> Tuple[RollupNode, Dict[str, Fraction]]:
        node = snapshot.node(idx)
        if node.level == HierarchyLevel.PRODUCT:
            sums = product_sums.get(node.name, {})
            exact = {d: sums.get(d, Fraction(0)) for d in ordered_dates}
            children: List[RollupNode] = []
        else:
            exact = {d: Fraction(0) for d in ordered_dates}
            children = []
            for child_idx in snapshot.children(idx):
                child_node, child_exact = build(child_idx)
                children.append(child_node)
                for d in ordered_dates:
                    exact[d] += child_exact[d]
        rolled = RollupNode(
            level=node.level.value,
            name=node.name,
            values={d: to_exact_number(v) for d, v in exact.items()},
            children=children,
        )
        return rolled, exact

    root, _ = build(node_idx)
    return root
