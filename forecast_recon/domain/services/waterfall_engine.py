"""
Waterfall decomposition.

Two kinds of waterfall are produced:

* build-up: the forecast at one date, split into its drivers, starting at 0;
* period comparison: the change of a period value versus the previous
  period, split into volume, price, mix and distribution effects.

Everything is computed on exact fractions and rounded once, at the end, to
the working precision. The rounding residual is pushed onto a single
component so the chain always lands on the rounded target.
"""

from __future__ import annotations

from datetime import date
from fractions import Fraction
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog

from forecast_recon.domain.entities.batch import BatchFailure, BatchResult
from forecast_recon.domain.entities.errors import (
    DomainError,
    InsufficientDataError,
    MissingBaselineError,
    RoundingInvariantViolation,
)
from forecast_recon.domain.entities.time_series import TimeSeriesPoint
from forecast_recon.domain.entities.waterfall import (
    BUILD_UP_ORDER,
    COMPARISON_ORDER,
    BuildUpDriver,
    ComparisonDriver,
    DriverContribution,
    ForecastDriverSnapshot,
    PeriodLine,
    PeriodSnapshot,
    Waterfall,
    WaterfallComponent,
    WaterfallEntity,
    WaterfallInputs,
    WaterfallType,
)
from forecast_recon.domain.services.rounding import (
    Numeric,
    distribute_remainder,
    largest_index,
    round_half_up,
    to_fraction,
    to_number,
)

logger = structlog.get_logger(__name__)

DEFAULT_PRECISION = 2

# forecast_data metrics that feed each build-up driver.
DEFAULT_DRIVER_METRICS: Dict[str, BuildUpDriver] = {
    "base_demand": BuildUpDriver.BASE_DEMAND,
    "promotional_demand": BuildUpDriver.PROMOTIONAL_LIFT,
    "event_impact": BuildUpDriver.EVENT_IMPACT,
    "exogenous_impact": BuildUpDriver.EXOGENOUS_ADJUSTMENT,
    "commercial_adjustment": BuildUpDriver.COMMERCIAL_ADJUSTMENT,
}


def build_chain(
    start: Numeric,
    named_values: Sequence[Tuple[str, Numeric]],
    target: Optional[Numeric] = None,
    precision: int = DEFAULT_PRECISION,
) -> List[WaterfallComponent]:
    """
    Chain signed values into waterfall components.

    Values are rounded half-up to `precision` decimals. The difference
    between the rounded target and the rounded start minus the rounded values
    goes to the component with the largest absolute rounded value, so the
    last `final_value` equals the rounded target.

    Args:
        start: Baseline of the first component.
        named_values: (name, value) pairs in render order.
        target: Value the chain must end on; defaults to start + sum(values).
        precision: Decimals kept on every value.
    """
    exact_start = to_fraction(start)
    exact_values = [to_fraction(value) for _, value in named_values]
    exact_target = (
        to_fraction(target)
        if target is not None
        else exact_start + sum(exact_values, Fraction(0))
    )

    rounded_start = round_half_up(exact_start, precision)
    rounded_target = round_half_up(exact_target, precision)
    rounded = [round_half_up(value, precision) for value in exact_values]
    adjusted = distribute_remainder(
        rounded, rounded_target - rounded_start, largest_index(rounded)
    )

    components: List[WaterfallComponent] = []
    baseline = rounded_start
    for order, ((name, _), value) in enumerate(zip(named_values, adjusted)):
        final = baseline + value
        components.append(
            WaterfallComponent(
                name=name,
                order=order,
                value=to_number(value),
                is_positive=value >= 0,
                baseline_value=to_number(baseline),
                final_value=to_number(final),
            )
        )
        baseline = final

    if components and baseline != rounded_target:
        raise RoundingInvariantViolation(
            "Waterfall chain does not end on its target.",
            details={"target": to_number(rounded_target), "end": to_number(baseline)},
        )
    return components


def build_up(
    snapshot: ForecastDriverSnapshot, precision: int = DEFAULT_PRECISION
) -> List[WaterfallComponent]:
    """
    Decompose the forecast at one date into its drivers, starting from 0.

    Causes of the same driver are summed before rounding. Whatever the
    drivers do not explain ends up in the "other" component; every driver
    appears, with 0 when it had no cause.

    Raises:
        InsufficientDataError: The date has no total forecast.
    """
    if snapshot.total_forecast is None:
        raise InsufficientDataError(
            "No total forecast to decompose.",
            details={"at_date": snapshot.at_date.isoformat()},
        )

    total = to_fraction(snapshot.total_forecast)
    causes = snapshot.driver_totals()
    sums: Dict[BuildUpDriver, Fraction] = {
        driver: sum((to_fraction(v) for v in causes.get(driver, [])), Fraction(0))
        for driver in BUILD_UP_ORDER
    }
    explained = sum(sums.values(), Fraction(0))
    sums[BuildUpDriver.OTHER] += total - explained

    components = build_chain(
        0,
        [(driver.value, sums[driver]) for driver in BUILD_UP_ORDER],
        target=total,
        precision=precision,
    )
    logger.debug(
        "waterfall.build_up",
        at_date=snapshot.at_date.isoformat(),
        total=float(total),
        causes=len(snapshot.contributions),
    )
    return components


def _line_value(line: PeriodLine) -> Fraction:
    return to_fraction(line.quantity) * to_fraction(line.unit_value)


def _comparison_effects(
    previous: Mapping[str, PeriodLine], current: Mapping[str, PeriodLine]
) -> Dict[ComparisonDriver, Fraction]:
    common = [key for key in previous if key in current]

    qty_prev = sum((to_fraction(previous[k].quantity) for k in common), Fraction(0))
    qty_curr = sum((to_fraction(current[k].quantity) for k in common), Fraction(0))
    value_prev = sum((_line_value(previous[k]) for k in common), Fraction(0))
    avg_price_prev = value_prev / qty_prev if qty_prev else Fraction(0)

    price = Fraction(0)
    quantity_effect = Fraction(0)
    for key in common:
        p_prev = to_fraction(previous[key].unit_value)
        p_curr = to_fraction(current[key].unit_value)
        q_prev = to_fraction(previous[key].quantity)
        q_curr = to_fraction(current[key].quantity)
        price += (p_curr - p_prev) * q_curr
        quantity_effect += (q_curr - q_prev) * p_prev

    volume = (qty_curr - qty_prev) * avg_price_prev

    new = sum(
        (_line_value(line) for key, line in current.items() if key not in previous),
        Fraction(0),
    )
    lost = sum(
        (_line_value(line) for key, line in previous.items() if key not in current),
        Fraction(0),
    )

    return {
        ComparisonDriver.VOLUME: volume,
        ComparisonDriver.PRICE: price,
        ComparisonDriver.MIX: quantity_effect - volume,
        ComparisonDriver.NEW_DISTRIBUTION: new,
        ComparisonDriver.LOST_DISTRIBUTION: -lost,
    }


def compare_periods(
    previous: Optional[PeriodSnapshot],
    current: Optional[PeriodSnapshot],
    precision: int = DEFAULT_PRECISION,
    entity: str = "",
) -> List[WaterfallComponent]:
    """
    Decompose the change from the previous period to the current one.

    Items present in both periods produce the volume, price and mix effects;
    items only in the current period are new distribution, items only in the
    previous one are lost distribution.

    Raises:
        MissingBaselineError: The previous period is absent or has no lines.
        InsufficientDataError: The current period is absent.
    """
    if previous is None or not previous.lines:
        period = previous.period.isoformat() if previous is not None else "previous period"
        raise MissingBaselineError(entity or "entity", period)
    if current is None:
        raise InsufficientDataError(
            "No data for the current period.", details={"entity": entity}
        )

    prev_items = previous.by_item()
    curr_items = current.by_item()
    effects = _comparison_effects(prev_items, curr_items)

    start = sum((_line_value(line) for line in prev_items.values()), Fraction(0))
    end = sum((_line_value(line) for line in curr_items.values()), Fraction(0))
    if start + sum(effects.values(), Fraction(0)) != end:
        raise RoundingInvariantViolation(
            "Comparison effects do not explain the period change.",
            details={"entity": entity},
        )

    components = build_chain(
        start,
        [(driver.value, effects[driver]) for driver in COMPARISON_ORDER],
        target=end,
        precision=precision,
    )
    logger.debug(
        "waterfall.compared",
        entity=entity,
        previous=previous.period.isoformat(),
        current=current.period.isoformat(),
        items_previous=len(prev_items),
        items_current=len(curr_items),
    )
    return components


def build_up_for(
    entity: WaterfallEntity,
    at_date: date,
    inputs: WaterfallInputs,
    precision: int = DEFAULT_PRECISION,
) -> Waterfall:
    """Build-up waterfall of one entity from already-fetched inputs."""
    snapshot = inputs.driver_snapshot(entity, at_date)
    if snapshot is None:
        raise InsufficientDataError(
            f"No forecast drivers for {entity} at {at_date.isoformat()}",
            details={"entity": str(entity), "at_date": at_date.isoformat()},
        )
    return Waterfall(
        entity=entity,
        waterfall_type=WaterfallType.BUILD_UP,
        analysis_date=at_date,
        components=build_up(snapshot, precision),
        period_start=at_date,
        period_end=at_date,
    )


def compare_for(
    entity: WaterfallEntity,
    current_date: date,
    previous_date: date,
    inputs: WaterfallInputs,
    precision: int = DEFAULT_PRECISION,
) -> Waterfall:
    """Period comparison waterfall of one entity from already-fetched inputs."""
    previous = inputs.period(entity, previous_date)
    if previous is None:
        raise MissingBaselineError(str(entity), previous_date.isoformat())
    return Waterfall(
        entity=entity,
        waterfall_type=WaterfallType.PERIOD_COMPARISON,
        analysis_date=current_date,
        components=compare_periods(
            previous, inputs.period(entity, current_date), precision, str(entity)
        ),
        period_start=previous_date,
        period_end=current_date,
    )


def build_up_batch(
    entities: Iterable[WaterfallEntity],
    at_date: date,
    inputs: WaterfallInputs,
    precision: int = DEFAULT_PRECISION,
) -> BatchResult[Waterfall]:
    """Build-up for many entities; a failing entity is reported, not raised."""
    result: BatchResult[Waterfall] = BatchResult()
    for entity in entities:
        try:
            result.succeeded[str(entity)] = build_up_for(entity, at_date, inputs, precision)
        except (DomainError, ValueError, TypeError) as exc:
            _record_failure(result, entity, exc)
    _log_batch(WaterfallType.BUILD_UP, result)
    return result


def compare_batch(
    entities: Iterable[WaterfallEntity],
    current_date: date,
    previous_date: date,
    inputs: WaterfallInputs,
    precision: int = DEFAULT_PRECISION,
) -> BatchResult[Waterfall]:
    """Period comparison for many entities; a failing entity is reported, not raised."""
    result: BatchResult[Waterfall] = BatchResult()
    for entity in entities:
        try:
            result.succeeded[str(entity)] = compare_for(
                entity, current_date, previous_date, inputs, precision
            )
        except (DomainError, ValueError, TypeError) as exc:
            _record_failure(result, entity, exc)
    _log_batch(WaterfallType.PERIOD_COMPARISON, result)
    return result


def _record_failure(
    result: BatchResult[Waterfall], entity: WaterfallEntity, exc: Exception
) -> None:
    message = exc.message if isinstance(exc, DomainError) else str(exc)
    logger.warning(
        "waterfall.entity_failed",
        entity=str(entity),
        error_type=type(exc).__name__,
        error=message,
    )
    result.failed.append(
        BatchFailure(
            entity_key=str(entity), error_type=type(exc).__name__, message=message
        )
    )


def _log_batch(waterfall_type: WaterfallType, result: BatchResult[Waterfall]) -> None:
    logger.info(
        "waterfall.batch_completed",
        waterfall_type=waterfall_type.value,
        succeeded=len(result.succeeded),
        failed=len(result.failed),
    )


def snapshot_from_points(
    points: Iterable[TimeSeriesPoint],
    entity: WaterfallEntity,
    at_date: date,
    total_metric: str = "forecast",
    driver_metrics: Optional[Mapping[str, BuildUpDriver]] = None,
) -> ForecastDriverSnapshot:
    """
    Collect the driver snapshot of one entity at one date from raw points.

    Every leaf of the entity (e.g. each customer when the entity has none)
    contributes its own causes; the total is the sum of `total_metric`, or
    `None` when no leaf reported it.
    """
    metrics = DEFAULT_DRIVER_METRICS if driver_metrics is None else driver_metrics
    total: Optional[Fraction] = None
    contributions: List[DriverContribution] = []
    for point in points:
        key = point.entity_key
        if point.date != at_date or key.product_id != entity.product_id:
            continue
        if key.location_id != entity.location_id:
            continue
        if entity.customer_id is not None and key.customer_id != entity.customer_id:
            continue
        if point.value is None:
            continue
        if point.metric_name == total_metric:
            total = (total or Fraction(0)) + to_fraction(point.value)
        elif point.metric_name in metrics:
            contributions.append(
                DriverContribution(
                    driver=metrics[point.metric_name],
                    value=point.value,
                    source=f"{point.metric_name}:{key}",
                )
            )
    return ForecastDriverSnapshot(
        at_date=at_date,
        total_forecast=float(total) if total is not None else None,
        contributions=contributions,
    )
