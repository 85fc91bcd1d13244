from __future__ import annotations

from datetime import date

import pytest

from forecast_recon.domain.entities.accuracy import (
    AccuracyCategory,
    AccuracyRecord,
    EntityKind,
    ForecastObservation,
    InsufficientData,
    Trend,
)
from forecast_recon.domain.services.accuracy_engine import (
    AccuracyPolicy,
    classify_trend,
    compute_accuracy,
    compute_error_metrics,
    group_observations,
    score_entities,
    summarize,
)


def _obs(pairs):
    return [
        ForecastObservation(date=date(2025, month, 1), forecast=f, actual=a)
        for month, (f, a) in enumerate(pairs, start=1)
    ]


def test_perfect_forecast_scores_full_accuracy() -> None:
    record = compute_accuracy(_obs([(100, 100), (50, 50)]), entity_key="P1")

    assert isinstance(record, AccuracyRecord)
    assert record.accuracy_score == 100
    assert record.accuracy_category == AccuracyCategory.HIGH
    assert record.forecast_count == 2
    assert record.last_forecast_date == date(2025, 2, 1)
    assert not record.is_low_accuracy


def test_score_is_clipped_at_zero() -> None:
    record = compute_accuracy(_obs([(300, 100)]))

    assert record.accuracy_score == 0
    assert record.avg_error_percentage == pytest.approx(200)
    assert record.accuracy_category == AccuracyCategory.LOW
    assert record.is_low_accuracy


def test_larger_errors_never_score_higher() -> None:
    scores = [
        compute_accuracy(_obs([(100 + offset, 100)])).accuracy_score
        for offset in (0, 5, 20, 60, 150)
    ]

    assert scores == sorted(scores, reverse=True)


def test_zero_actual_periods_count_but_do_not_weigh() -> None:
    record = compute_accuracy(_obs([(5, 0), (90, 100)]))

    assert record.forecast_count == 2
    assert record.avg_error_percentage == pytest.approx(10)
    assert record.accuracy_score == pytest.approx(90)


def test_only_zero_actuals_is_insufficient_data() -> None:
    outcome = compute_accuracy(_obs([(5, 0), (3, 0)]), entity_key="P9")

    assert isinstance(outcome, InsufficientData)
    assert outcome.forecast_count == 2
    assert outcome.entity_key == "P9"


def test_nothing_to_compare_is_insufficient_data() -> None:
    outcome = compute_accuracy(_obs([(5, None), (None, 3)]))

    assert isinstance(outcome, InsufficientData)
    assert outcome.forecast_count == 0


def test_threshold_outside_percentage_range_is_rejected() -> None:
    with pytest.raises(ValueError):
        compute_accuracy(_obs([(1, 1)]), threshold=120)


def test_trend_compares_earliest_and_latest_thirds() -> None:
    improving = _obs([(130, 100), (130, 100), (120, 100), (120, 100), (105, 100), (105, 100)])
    declining = list(reversed(improving))
    declining = [
        ForecastObservation(date=o.date, forecast=d.forecast, actual=d.actual)
        for o, d in zip(improving, declining)
    ]

    assert classify_trend(improving) == Trend.IMPROVING
    assert classify_trend(declining) == Trend.DECLINING
    assert classify_trend(improving[:2]) == Trend.STABLE


def test_trend_margin_absorbs_small_changes() -> None:
    records = _obs([(120, 100), (120, 100), (119, 100)])

    assert classify_trend(records, AccuracyPolicy(trend_margin=0.10)) == Trend.STABLE


def test_error_metrics_and_bias() -> None:
    metrics = compute_error_metrics(_obs([(110, 100), (120, 100)]))

    assert metrics is not None
    assert metrics.mae == pytest.approx(15)
    assert metrics.rmse == pytest.approx((250) ** 0.5)
    assert metrics.mape == pytest.approx(15)
    assert metrics.wmape == pytest.approx(15)
    assert metrics.bias == 0.15
    assert compute_error_metrics([]) is None


def test_group_observations_by_product(sample_points) -> None:
    grouped = group_observations(sample_points, EntityKind.PRODUCT)

    assert sorted(grouped) == ["P1", "P2", "P3", "P5"]
    assert [(o.forecast, o.actual) for o in grouped["P1"]] == [(14, 11), (12, None)]
    assert [(o.forecast, o.actual) for o in grouped["P5"]] == [(None, 99)]


def test_group_observations_by_customer(sample_points) -> None:
    grouped = group_observations(sample_points, EntityKind.CUSTOMER)

    assert grouped["C1"][0].forecast == 35
    assert grouped["C1"][0].actual == 17
    assert "C2_P1" in group_observations(sample_points, EntityKind.PRODUCT_CUSTOMER)


def test_score_entities_keeps_excluded_apart(sample_points) -> None:
    grouped = group_observations(sample_points, EntityKind.PRODUCT)

    batch = score_entities(grouped, EntityKind.PRODUCT, threshold=75)

    assert [r.entity_key for r in batch.records] == ["P1", "P3"]
    assert [m.entity_key for m in batch.excluded] == ["P2", "P5"]
    assert [r.entity_key for r in batch.low_accuracy] == ["P1"]

    summary = summarize(batch)
    assert summary.total_entities == 2
    assert summary.low_accuracy_entities == 1
    assert summary.excluded_entities == 2
    assert summary.overall_accuracy == pytest.approx(
        (100 - 300 / 11 + 100 - 100 / 6) / 2
    )


def test_summary_of_empty_batch() -> None:
    summary = summarize(score_entities({}, EntityKind.CUSTOMER))

    assert summary.total_entities == 0
    assert summary.accuracy_trend == Trend.STABLE
