from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from forecast_recon.domain.entities.accuracy import (
    AccuracyBatch,
    AccuracyCategory,
    AccuracyRecord,
    EntityKind,
    Trend,
)
from forecast_recon.domain.entities.analysis_cache import AnalysisType, CachedAnalysis
from forecast_recon.domain.entities.batch import BatchFailure, BatchResult
from forecast_recon.domain.entities.hierarchy import (
    DimensionSelection,
    HierarchyLevel,
)
from forecast_recon.domain.entities.time_series import (
    AggregatedSeriesRow,
    EntityKey,
    SeriesName,
)
from forecast_recon.domain.entities.waterfall import (
    PeriodLine,
    PeriodSnapshot,
    WaterfallEntity,
)
from forecast_recon.shared.consts import TOTAL_GROUP_KEY


def _record(key: str, score: float) -> AccuracyRecord:
    return AccuracyRecord(
        entity_key=key,
        entity_kind=EntityKind.PRODUCT,
        accuracy_score=score,
        avg_error_percentage=100 - score,
        forecast_count=1,
        last_forecast_date=date(2025, 1, 1),
        trend=Trend.STABLE,
        accuracy_category=AccuracyCategory.from_score(score),
    )


def test_hierarchy_snapshot_arena(sample_hierarchy) -> None:
    bebidas = sample_hierarchy.root("Bebidas")

    assert bebidas is not None
    assert sample_hierarchy.node(bebidas).level == HierarchyLevel.CATEGORY
    assert sample_hierarchy.leaves(bebidas) == ["P1", "P2", "P3", "P4"]
    aguas = sample_hierarchy.find_child(bebidas, "Aguas")
    assert sample_hierarchy.node(aguas).parent == "Bebidas"
    assert sample_hierarchy.has_data("P2", ["forecast"])
    assert not sample_hierarchy.has_data("P2", ["actual"])
    assert not sample_hierarchy.has_data("P4")


def test_selection_path_skips_empty_levels() -> None:
    selection = DimensionSelection(category="Bebidas", class_name="Natural")

    assert selection.path() == [
        (HierarchyLevel.CATEGORY, "Bebidas"),
        (HierarchyLevel.CLASS, "Natural"),
    ]
    assert HierarchyLevel.CLASS.child == HierarchyLevel.PRODUCT
    assert HierarchyLevel.PRODUCT.child is None


def test_entity_key_and_cell_key_formatting() -> None:
    assert str(EntityKey("P1", "C1", "L1")) == "P1_C1_L1"
    assert str(EntityKey("P1", location_id="L1")) == "P1_L1"
    assert str(WaterfallEntity("P1", "L1", "C1")) == "P1/L1/C1"

    row = AggregatedSeriesRow(TOTAL_GROUP_KEY, SeriesName.DEMAND_PLANNER)
    assert row.is_total
    assert row.cell_key("2025-01-01") == f"{TOTAL_GROUP_KEY}-Demand Planner-2025-01-01"
    assert SeriesName.SALES_HISTORY.rank() == 0


def test_period_snapshot_merges_items_with_weighted_price() -> None:
    snapshot = PeriodSnapshot(
        period=date(2025, 1, 1),
        lines=[PeriodLine("A", 10, 2.0), PeriodLine("A", 30, 4.0), PeriodLine("B", 5)],
    )

    merged = snapshot.by_item()

    assert merged["A"].quantity == 40
    assert merged["A"].price == 3.5
    assert merged["B"].price is None
    assert snapshot.total_value == 145


def test_accuracy_categories_and_low_accuracy_order() -> None:
    batch = AccuracyBatch(
        threshold=75,
        records=[_record("B", 60), _record("A", 60), _record("C", 90), _record("D", 10)],
    )

    assert [r.entity_key for r in batch.low_accuracy] == ["D", "A", "B"]
    assert AccuracyCategory.from_score(80) == AccuracyCategory.HIGH
    assert AccuracyCategory.from_score(79.9) == AccuracyCategory.MEDIUM
    assert AccuracyCategory.from_score(59.9) == AccuracyCategory.LOW


def test_batch_result_partial_success() -> None:
    result: BatchResult[int] = BatchResult()
    result.succeeded["a"] = 1

    assert not result.is_partial

    result.failed.append(BatchFailure("b", "MissingBaselineError", "no data"))
    assert result.is_partial
    assert result.failed_keys == ["b"]


def test_cached_analysis_validity_window() -> None:
    entry = CachedAnalysis.with_ttl(AnalysisType.ACCURACY, {"k": 1}, {"v": 2}, ttl_seconds=60)

    assert entry.is_usable()
    assert not entry.is_usable(entry.computed_at + timedelta(seconds=61))

    naive = CachedAnalysis(
        AnalysisType.ACCURACY,
        {},
        None,
        expires_at=datetime(2000, 1, 1),
    )
    assert not naive.is_usable(datetime(2001, 1, 1, tzinfo=timezone.utc))

    entry.is_valid = False
    assert not entry.is_usable()
