"""
Fair-share redistribution.

When a planner overwrites an aggregate cell (the "Total Categoría" row of the
Demand Planner series at one date) the difference is pushed down to the child
rows in proportion to what they already hold. Shares are whole units and the
children always add up exactly to the new aggregate.
"""

from __future__ import annotations

import re
from fractions import Fraction
from typing import Iterable, List, Optional, Sequence

import structlog

from forecast_recon.domain.entities.errors import (
    InsufficientDataError,
    NonEditableCellError,
    RoundingInvariantViolation,
)
from forecast_recon.domain.entities.redistribution import (
    AggregateEditResult,
    ChildValue,
    RedistributedValue,
)
from forecast_recon.domain.entities.time_series import AggregatedSeriesRow, SeriesName
from forecast_recon.domain.services.rounding import (
    Numeric,
    distribute_remainder,
    largest_index,
    round_half_up,
    to_decimal_fraction,
    to_exact_number,
    to_number,
)

logger = structlog.get_logger(__name__)

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DEFAULT_EDITABLE_SERIES = (SeriesName.DEMAND_PLANNER,)


def _equal_shares(delta: Fraction, count: int) -> List[Fraction]:
    share = round_half_up(delta / count)
    shares = [share] * count
    # The last child in render order absorbs the remainder.
    shares[-1] += delta - share * count
    return shares


def _proportional_shares(delta: Fraction, currents: Sequence[Fraction]) -> List[Fraction]:
    total = sum(currents, Fraction(0))
    rounded = [
        round_half_up(delta * current / total) if current else Fraction(0)
        for current in currents
    ]
    eligible = [bool(current) for current in currents]
    receiver = largest_index(rounded, eligible, key=lambda value: value)
    return distribute_remainder(rounded, delta, receiver)


def redistribute(
    aggregate_delta: Numeric, children: Sequence[ChildValue]
) -> List[RedistributedValue]:
    """
    Split an aggregate change across its children.

    Children whose values add up to zero share the delta equally, with the
    rounding remainder on the last child. Otherwise each child receives
    `delta * current / total` rounded half-up to a whole unit, and the
    remainder goes to the child with the largest rounded share (first one on
    ties). Children holding zero receive nothing in the proportional case.

    Args:
        aggregate_delta: New aggregate value minus the old one.
        children: Child cells in render order.

    Returns:
        One entry per child, in the same order.

    Raises:
        InsufficientDataError: A non-zero delta with no children to take it.
        RoundingInvariantViolation: The reconciled children do not add up.
    """
    delta = to_decimal_fraction(aggregate_delta)
    currents = [to_decimal_fraction(child.current_value) for child in children]

    if not delta:
        return [
            RedistributedValue(
                key=child.key,
                current_value=child.current_value,
                share=0,
                new_value=child.current_value,
            )
            for child in children
        ]

    if not children:
        raise InsufficientDataError(
            "No child cells to redistribute the aggregate change to.",
            details={"aggregate_delta": to_number(delta)},
        )

    total = sum(currents, Fraction(0))
    if total:
        shares = _proportional_shares(delta, currents)
    else:
        shares = _equal_shares(delta, len(children))

    new_values = [current + share for current, share in zip(currents, shares)]
    if sum(new_values, Fraction(0)) != total + delta:
        raise RoundingInvariantViolation(
            "Redistributed children do not match the new aggregate.",
            details={
                "expected": to_number(total + delta),
                "actual": to_number(sum(new_values, Fraction(0))),
            },
        )

    logger.debug(
        "fair_share.redistributed",
        children=len(children),
        aggregate_delta=to_number(delta),
        proportional=bool(total),
    )

    return [
        RedistributedValue(
            key=child.key,
            current_value=child.current_value,
            share=to_number(share),
            new_value=to_number(new_value),
        )
        for child, share, new_value in zip(children, shares, new_values)
    ]


def _find_total_row(
    rows: Sequence[AggregatedSeriesRow], series: SeriesName
) -> Optional[int]:
    for idx, row in enumerate(rows):
        if row.is_total and row.series_name == series:
            return idx
    return None


def apply_aggregate_edit(
    rows: Sequence[AggregatedSeriesRow],
    iso_date: str,
    new_value: Numeric,
    series: SeriesName = SeriesName.DEMAND_PLANNER,
    editable_series: Iterable[SeriesName] = DEFAULT_EDITABLE_SERIES,
) -> AggregateEditResult:
    """
    Apply an edit of the total cell of `series` at `iso_date` to a pivot.

    The input rows are not modified; changed rows are copied. Only child rows
    of the same series that carry a value for the date take part.

    Raises:
        NonEditableCellError: The series is not editable, the column is not a
            date, or the pivot has no total row for the series.
    """
    if series not in tuple(editable_series):
        raise NonEditableCellError(
            f"Series '{series.value}' does not accept aggregate edits.",
            details={"series": series.value},
        )
    if not ISO_DATE_PATTERN.match(iso_date):
        raise NonEditableCellError(
            f"Column '{iso_date}' is not a date column.", details={"column": iso_date}
        )

    total_idx = _find_total_row(rows, series)
    if total_idx is None:
        raise NonEditableCellError(
            f"Pivot has no total row for series '{series.value}'.",
            details={"series": series.value},
        )

    total_row = rows[total_idx]
    old_value = to_decimal_fraction(total_row.values.get(iso_date))
    delta = to_decimal_fraction(new_value) - old_value
    if not delta:
        return AggregateEditResult(rows=list(rows), aggregate_delta=0)

    child_indices = [
        idx
        for idx, row in enumerate(rows)
        if row.series_name == series
        and not row.is_total
        and row.values.get(iso_date) is not None
    ]
    children = [
        ChildValue(key=rows[idx].group_key, current_value=rows[idx].values[iso_date])
        for idx in child_indices
    ]
    redistributed = redistribute(delta, children)

    updated = list(rows)
    updated_cells = {total_row.cell_key(iso_date)}
    updated[total_idx] = AggregatedSeriesRow(
        group_key=total_row.group_key,
        series_name=total_row.series_name,
        values={
            **total_row.values,
            iso_date: to_exact_number(to_decimal_fraction(new_value)),
        },
    )
    for idx, result in zip(child_indices, redistributed):
        row = rows[idx]
        updated[idx] = AggregatedSeriesRow(
            group_key=row.group_key,
            series_name=row.series_name,
            values={
                **row.values,
                iso_date: to_exact_number(to_decimal_fraction(result.new_value)),
            },
        )
        updated_cells.add(row.cell_key(iso_date))

    logger.info(
        "fair_share.aggregate_edit_applied",
        series=series.value,
        date=iso_date,
        aggregate_delta=to_number(delta),
        children=len(children),
    )

    return AggregateEditResult(
        rows=updated,
        aggregate_delta=to_number(delta),
        updated_cells=frozenset(updated_cells),
    )
