"""
Accuracy & error metrics.

Scores how well forecasts matched actuals for one entity (product, customer
or product x customer pair) and classifies the error trend. Entities that
cannot be scored come back as an `InsufficientData` marker; callers leave
them out of their results instead of treating them as zero accuracy.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import DefaultDict, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import structlog

from forecast_recon.domain.entities.accuracy import (
    AccuracyBatch,
    AccuracyCategory,
    AccuracyOutcome,
    AccuracyRecord,
    AccuracySummary,
    EntityKind,
    ErrorMetrics,
    ForecastObservation,
    InsufficientData,
    Trend,
)
from forecast_recon.domain.entities.errors import DomainError
from forecast_recon.domain.entities.time_series import TimeSeriesPoint

logger = structlog.get_logger(__name__)

DEFAULT_ACCURACY_THRESHOLD = 75.0


@dataclass(frozen=True)
class AccuracyPolicy:
    """Constants applied uniformly to every scored entity.

    Attributes:
        zero_actual_epsilon: Actuals with an absolute value at or below this
            are zero-actual periods: counted, but left out of the error mean.
        trend_margin: Relative change of the error between the earliest and
            the most recent third of the window needed to call a trend.
        min_trend_records: Fewer scorable periods than this is always stable.
    """

    zero_actual_epsilon: float = 1e-9
    trend_margin: float = 0.10
    min_trend_records: int = 3


DEFAULT_POLICY = AccuracyPolicy()


def _comparable(records: Iterable[ForecastObservation]) -> List[ForecastObservation]:
    usable = [r for r in records if r.forecast is not None and r.actual is not None]
    return sorted(usable, key=lambda r: r.date)


def _error_percentages(
    forecasts: np.ndarray, actuals: np.ndarray, epsilon: float
) -> np.ndarray:
    mask = np.abs(actuals) > epsilon
    return np.abs(forecasts[mask] - actuals[mask]) / np.abs(actuals[mask]) * 100.0


def classify_trend(
    records: Sequence[ForecastObservation], policy: AccuracyPolicy = DEFAULT_POLICY
) -> Trend:
    """Compare the error of the most recent third against the earliest third."""
    scorable = [
        r for r in _comparable(records) if abs(r.actual or 0.0) > policy.zero_actual_epsilon
    ]
    if len(scorable) < policy.min_trend_records:
        return Trend.STABLE

    k = len(scorable) // 3
    early = scorable[:k]
    recent = scorable[-k:]

    def mean_error(window: Sequence[ForecastObservation]) -> float:
        forecasts = np.array([r.forecast for r in window], dtype=float)
        actuals = np.array([r.actual for r in window], dtype=float)
        return float(np.mean(_error_percentages(forecasts, actuals, policy.zero_actual_epsilon)))

    early_error = mean_error(early)
    recent_error = mean_error(recent)

    if early_error == 0:
        return Trend.DECLINING if recent_error > 0 else Trend.STABLE
    if recent_error < early_error * (1 - policy.trend_margin):
        return Trend.IMPROVING
    if recent_error > early_error * (1 + policy.trend_margin):
        return Trend.DECLINING
    return Trend.STABLE


def compute_error_metrics(
    records: Sequence[ForecastObservation], policy: AccuracyPolicy = DEFAULT_POLICY
) -> Optional[ErrorMetrics]:
    """MAE, RMSE, MAPE, WMAPE, SMAPE and relative bias over comparable records."""
    usable = _comparable(records)
    if not usable:
        return None

    forecasts = np.array([r.forecast for r in usable], dtype=float)
    actuals = np.array([r.actual for r in usable], dtype=float)
    errors = forecasts - actuals
    abs_actual_total = float(np.sum(np.abs(actuals)))

    percentages = _error_percentages(forecasts, actuals, policy.zero_actual_epsilon)
    mape = float(np.mean(percentages)) if percentages.size else None
    wmape = (
        float(np.sum(np.abs(errors)) / abs_actual_total * 100.0)
        if abs_actual_total > policy.zero_actual_epsilon
        else None
    )

    denominators = np.abs(forecasts) + np.abs(actuals)
    smape_mask = denominators > policy.zero_actual_epsilon
    smape = (
        float(np.mean(2.0 * np.abs(errors[smape_mask]) / denominators[smape_mask]) * 100.0)
        if smape_mask.any()
        else None
    )
    bias = (
        round(float(np.sum(errors)) / abs_actual_total, 2)
        if abs_actual_total > policy.zero_actual_epsilon
        else None
    )

    return ErrorMetrics(
        mae=float(np.mean(np.abs(errors))),
        rmse=float(np.sqrt(np.mean(errors**2))),
        mape=mape,
        wmape=wmape,
        smape=smape,
        bias=bias,
    )


def compute_accuracy(
    records: Sequence[ForecastObservation],
    threshold: float = DEFAULT_ACCURACY_THRESHOLD,
    entity_key: str = "",
    entity_kind: EntityKind = EntityKind.PRODUCT,
    policy: AccuracyPolicy = DEFAULT_POLICY,
) -> AccuracyOutcome:
    """
    Score one entity.

    Periods without an actual or a forecast are ignored. Zero-actual periods
    count towards `forecast_count` but not towards the error average.

    Args:
        records: Forecast/actual pairs of the entity over the window.
        threshold: Accuracy score under which the entity is low-accuracy.
        entity_key: Identifier reported on the record.
        entity_kind: What the key identifies.
        policy: Epsilon and trend margin shared by every entity.

    Returns:
        The accuracy record, or `InsufficientData` when nothing could be
        compared or every compared period had a zero actual.
    """
    if not 0 <= threshold <= 100:
        raise ValueError("Accuracy threshold must be between 0 and 100.")

    usable = _comparable(records)
    if not usable:
        return InsufficientData(
            entity_key=entity_key,
            entity_kind=entity_kind,
            reason="No periods with both forecast and actual.",
        )

    forecasts = np.array([r.forecast for r in usable], dtype=float)
    actuals = np.array([r.actual for r in usable], dtype=float)
    percentages = _error_percentages(forecasts, actuals, policy.zero_actual_epsilon)
    if not percentages.size:
        return InsufficientData(
            entity_key=entity_key,
            entity_kind=entity_kind,
            reason="Every compared period has a zero actual.",
            forecast_count=len(usable),
        )

    avg_error = float(np.mean(percentages))
    score = float(np.clip(100.0 - avg_error, 0.0, 100.0))
    metrics = compute_error_metrics(usable, policy)

    record = AccuracyRecord(
        entity_key=entity_key,
        entity_kind=entity_kind,
        accuracy_score=score,
        avg_error_percentage=avg_error,
        forecast_count=len(usable),
        last_forecast_date=usable[-1].date,
        trend=classify_trend(usable, policy),
        accuracy_category=AccuracyCategory.from_score(score),
        forecast_bias=metrics.bias if metrics else None,
        metrics=metrics,
        is_low_accuracy=score < threshold,
    )
    return record


def score_entities(
    observations: Mapping[str, Sequence[ForecastObservation]],
    entity_kind: EntityKind,
    threshold: float = DEFAULT_ACCURACY_THRESHOLD,
    policy: AccuracyPolicy = DEFAULT_POLICY,
) -> AccuracyBatch:
    """Score many entities; one failing entity never aborts the batch."""
    batch = AccuracyBatch(threshold=threshold)
    for entity_key in sorted(observations):
        try:
            outcome = compute_accuracy(
                observations[entity_key],
                threshold=threshold,
                entity_key=entity_key,
                entity_kind=entity_kind,
                policy=policy,
            )
        except (DomainError, ValueError, TypeError) as exc:
            logger.warning(
                "accuracy.entity_failed",
                entity_key=entity_key,
                entity_kind=entity_kind.value,
                error=str(exc),
            )
            batch.excluded.append(
                InsufficientData(
                    entity_key=entity_key, entity_kind=entity_kind, reason=str(exc)
                )
            )
            continue

        if isinstance(outcome, InsufficientData):
            batch.excluded.append(outcome)
        else:
            batch.records.append(outcome)

    logger.info(
        "accuracy.batch_scored",
        entity_kind=entity_kind.value,
        scored=len(batch.records),
        excluded=len(batch.excluded),
        low_accuracy=len(batch.low_accuracy),
        threshold=threshold,
    )
    return batch


def summarize(batch: AccuracyBatch) -> AccuracySummary:
    """KPI headline for a scored batch."""
    if not batch.records:
        return AccuracySummary(
            total_entities=0,
            low_accuracy_entities=0,
            excluded_entities=len(batch.excluded),
            overall_accuracy=0.0,
            accuracy_trend=Trend.STABLE,
        )

    trends = [record.trend for record in batch.records]
    improving = trends.count(Trend.IMPROVING)
    declining = trends.count(Trend.DECLINING)
    if improving > declining:
        overall_trend = Trend.IMPROVING
    elif declining > improving:
        overall_trend = Trend.DECLINING
    else:
        overall_trend = Trend.STABLE

    return AccuracySummary(
        total_entities=len(batch.records),
        low_accuracy_entities=len(batch.low_accuracy),
        excluded_entities=len(batch.excluded),
        overall_accuracy=float(np.mean([r.accuracy_score for r in batch.records])),
        accuracy_trend=overall_trend,
    )


def _entity_key(point: TimeSeriesPoint, kind: EntityKind) -> Optional[str]:
    key = point.entity_key
    if kind == EntityKind.PRODUCT:
        return key.product_id
    if key.customer_id is None:
        return None
    if kind == EntityKind.CUSTOMER:
        return key.customer_id
    return f"{key.customer_id}_{key.product_id}"


def group_observations(
    points: Iterable[TimeSeriesPoint],
    entity_kind: EntityKind,
    forecast_metric: str = "forecast",
    actual_metric: str = "actual",
) -> Dict[str, List[ForecastObservation]]:
    """
    Pair forecast and actual points per entity and date.

    Leaves of the same entity (e.g. all locations of a product) are summed per
    date. Points without a customer are skipped for customer-based kinds.
    """
    sums: DefaultDict[Tuple[str, date], Dict[str, Optional[float]]] = defaultdict(
        lambda: {forecast_metric: None, actual_metric: None}
    )
    for point in points:
        if point.metric_name not in (forecast_metric, actual_metric):
            continue
        key = _entity_key(point, entity_kind)
        if key is None or point.value is None:
            continue
        slot = sums[(key, point.date)]
        slot[point.metric_name] = (slot[point.metric_name] or 0.0) + float(point.value)

    grouped: DefaultDict[str, List[ForecastObservation]] = defaultdict(list)
    for (key, day), values in sorted(sums.items()):
        grouped[key].append(
            ForecastObservation(
                date=day, forecast=values[forecast_metric], actual=values[actual_metric]
            )
        )
    return dict(grouped)
