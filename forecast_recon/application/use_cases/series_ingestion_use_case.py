"""
Application Use Cases - Series Ingestion

This module turns raw rows fetched by the caller into typed points. Rows are
validated with the boundary DTOs; wide `forecast_data` rows are melted into
one point per metric with pandas, and duplicate (leaf, date, metric) rows are
averaged.
"""

from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Union

import pandas as pd
import structlog
from pydantic import ValidationError

from forecast_recon.application.dtos.series_dto import (
    ForecastDataRowDTO,
    ProductHierarchyRowDTO,
    TimeSeriesRowDTO,
)
from forecast_recon.domain.entities.hierarchy import HierarchySnapshot
from forecast_recon.domain.entities.time_series import EntityKey, TimeSeriesPoint

logger = structlog.get_logger(__name__)

RawRow = Union[Mapping[str, Any], TimeSeriesRowDTO, ForecastDataRowDTO]

_KEY_COLUMNS = ["product_id", "customer_id", "location_id", "date", "metric_name"]


def _clean_key(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    return str(value)


class SeriesIngestionUseCase:
    """
    Validates raw rows and converts them to `TimeSeriesPoint`s:
      - Long rows (one metric per row) or wide forecast_data rows
      - Invalid rows are skipped and counted, or rejected when strict
      - Duplicate (leaf, date, metric) rows are averaged
    """

    def __init__(self, strict: bool = False):
        """
        Initialize the ingestion use case.

        Args:
            strict: Raise on the first invalid row instead of skipping it
        """
        self.strict = strict

    def _validate(self, rows: Iterable[RawRow], model: type) -> List[Any]:
        valid: List[Any] = []
        rejected = 0
        for position, row in enumerate(rows):
            if isinstance(row, model):
                valid.append(row)
                continue
            try:
                valid.append(model.model_validate(row))
            except ValidationError as e:
                if self.strict:
                    raise ValueError(f"Invalid row at position {position}: {e}") from e
                rejected += 1
                logger.debug("ingestion.row_rejected", position=position, error=str(e))
        if rejected:
            logger.warning("ingestion.rows_rejected", rejected=rejected, accepted=len(valid))
        return valid

    def _to_points(self, frame: pd.DataFrame) -> List[TimeSeriesPoint]:
        if frame.empty:
            return []
        frame = frame.assign(value=pd.to_numeric(frame["value"], errors="coerce"))

        duplicated = frame.duplicated(subset=_KEY_COLUMNS, keep=False)
        if duplicated.any():
            logger.warning(
                "ingestion.duplicates_averaged",
                duplicate_rows=int(duplicated.sum()),
            )

        grouped = (
            frame.groupby(_KEY_COLUMNS, dropna=False, sort=True)["value"]
            .mean()
            .reset_index()
        )

        points: List[TimeSeriesPoint] = []
        for row in grouped.itertuples(index=False):
            value = None if pd.isna(row.value) else float(row.value)
            points.append(
                TimeSeriesPoint(
                    entity_key=EntityKey(
                        product_id=str(row.product_id),
                        customer_id=_clean_key(row.customer_id),
                        location_id=_clean_key(row.location_id),
                    ),
                    date=row.date,
                    metric_name=str(row.metric_name),
                    value=value,
                )
            )
        return points

    def from_long_rows(self, rows: Iterable[RawRow]) -> List[TimeSeriesPoint]:
        """
        Convert long-format rows into points.

        Args:
            rows: Mappings or `TimeSeriesRowDTO`s

        Returns:
            One point per (leaf, date, metric), sorted by those keys
        """
        dtos: List[TimeSeriesRowDTO] = self._validate(rows, TimeSeriesRowDTO)
        frame = pd.DataFrame(
            [dto.model_dump() for dto in dtos],
            columns=_KEY_COLUMNS + ["value"],
        )
        points = self._to_points(frame)
        logger.info("ingestion.long_rows", rows=len(dtos), points=len(points))
        return points

    def from_forecast_rows(
        self,
        rows: Iterable[RawRow],
        metrics: Optional[Sequence[str]] = None,
    ) -> List[TimeSeriesPoint]:
        """
        Melt wide forecast_data rows into one point per metric.

        Args:
            rows: Mappings or `ForecastDataRowDTO`s
            metrics: Metric columns to keep (all known metrics if None)

        Returns:
            One point per (leaf, date, metric), sorted by those keys
        """
        value_columns = list(metrics or ForecastDataRowDTO.METRIC_FIELDS)
        unknown = set(value_columns) - set(ForecastDataRowDTO.METRIC_FIELDS)
        if unknown:
            raise ValueError(f"Unknown forecast_data metrics: {sorted(unknown)}")

        dtos: List[ForecastDataRowDTO] = self._validate(rows, ForecastDataRowDTO)
        id_columns = list(ForecastDataRowDTO.KEY_FIELDS) + ["postdate"]
        wide = pd.DataFrame(
            [dto.model_dump() for dto in dtos], columns=id_columns + value_columns
        )
        long = wide.melt(
            id_vars=id_columns,
            value_vars=value_columns,
            var_name="metric_name",
            value_name="value",
        ).rename(columns={"postdate": "date"})

        points = self._to_points(long)
        logger.info(
            "ingestion.forecast_rows",
            rows=len(dtos),
            metrics=len(value_columns),
            points=len(points),
        )
        return points

    def build_hierarchy(
        self,
        products: Iterable[Union[Mapping[str, Any], ProductHierarchyRowDTO]],
        points: Iterable[TimeSeriesPoint],
    ) -> HierarchySnapshot:
        """
        Build the hierarchy snapshot with per-product metric presence.

        A product has a metric when at least one of its points for that
        metric carries a value.
        """
        rows: List[ProductHierarchyRowDTO] = self._validate(products, ProductHierarchyRowDTO)
        return HierarchySnapshot.from_products(
            [row.to_entity() for row in rows], presence=metric_presence(points)
        )


def metric_presence(points: Iterable[TimeSeriesPoint]) -> Dict[str, Set[str]]:
    """Metrics with at least one non-null value, per product."""
    presence: Dict[str, Set[str]] = defaultdict(set)
    for point in points:
        if point.has_value:
            presence[point.entity_key.product_id].add(point.metric_name)
    return dict(presence)
