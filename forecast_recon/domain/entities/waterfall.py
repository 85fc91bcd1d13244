"""
Domain Entities - Waterfall

Inputs and outputs of the waterfall decomposition. A waterfall is an ordered
list of signed components; each component starts where the previous one
ended, and the last one ends on the target value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Tuple


class WaterfallType(str, Enum):
    BUILD_UP = "build_up"
    PERIOD_COMPARISON = "period_comparison"


class BuildUpDriver(str, Enum):
    """Named drivers of a single forecast value, in render order."""

    BASE_DEMAND = "base_demand"
    PROMOTIONAL_LIFT = "promotional_lift"
    EVENT_IMPACT = "event_impact"
    EXOGENOUS_ADJUSTMENT = "exogenous_adjustment"
    COMMERCIAL_ADJUSTMENT = "commercial_adjustment"
    OTHER = "other"


class ComparisonDriver(str, Enum):
    """Named drivers of a period-over-period change, base effects first."""

    VOLUME = "volume"
    PRICE = "price"
    MIX = "mix"
    NEW_DISTRIBUTION = "new_distribution"
    LOST_DISTRIBUTION = "lost_distribution"


BUILD_UP_ORDER: Tuple[BuildUpDriver, ...] = tuple(BuildUpDriver)
COMPARISON_ORDER: Tuple[ComparisonDriver, ...] = tuple(ComparisonDriver)


@dataclass(frozen=True, slots=True)
class WaterfallComponent:
    """One bar of a waterfall chart."""

    name: str
    order: int
    value: float
    is_positive: bool
    baseline_value: float
    final_value: float


@dataclass(frozen=True, slots=True)
class DriverContribution:
    """A single cause feeding one build-up driver (e.g. one promotion)."""

    driver: BuildUpDriver
    value: float
    source: Optional[str] = None


@dataclass(slots=True)
class ForecastDriverSnapshot:
    """Total forecast at one date and the causes that explain it."""

    at_date: date
    total_forecast: Optional[float]
    contributions: List[DriverContribution] = field(default_factory=list)

    def driver_totals(self) -> Dict[BuildUpDriver, List[float]]:
        totals: Dict[BuildUpDriver, List[float]] = {}
        for contribution in self.contributions:
            totals.setdefault(contribution.driver, []).append(contribution.value)
        return totals


@dataclass(frozen=True, slots=True)
class PeriodLine:
    """Quantity (and optional unit price) of one item within a period.

    Items are whatever the comparison is distributed over: customers,
    locations or channel partners. Without a price the line is valued at
    its quantity.
    """

    item_key: str
    quantity: float
    price: Optional[float] = None

    @property
    def unit_value(self) -> float:
        return 1.0 if self.price is None else self.price

    @property
    def value(self) -> float:
        return self.quantity * self.unit_value


@dataclass(slots=True)
class PeriodSnapshot:
    """All lines of one entity for one period."""

    period: date
    lines: List[PeriodLine] = field(default_factory=list)

    def by_item(self) -> Dict[str, PeriodLine]:
        """Merge repeated item keys into one line (quantity-weighted price)."""
        merged: Dict[str, Tuple[float, float, bool]] = {}
        for line in self.lines:
            quantity, value, priced = merged.get(line.item_key, (0.0, 0.0, False))
            merged[line.item_key] = (
                quantity + line.quantity,
                value + line.value,
                priced or line.price is not None,
            )
        result: Dict[str, PeriodLine] = {}
        for item_key, (quantity, value, priced) in merged.items():
            if not priced:
                result[item_key] = PeriodLine(item_key=item_key, quantity=quantity)
            elif quantity:
                result[item_key] = PeriodLine(item_key, quantity, value / quantity)
            else:
                result[item_key] = PeriodLine(item_key, quantity, 0.0)
        return result

    @property
    def total_value(self) -> float:
        return sum(line.value for line in self.lines)


@dataclass(frozen=True, slots=True)
class WaterfallEntity:
    """Product / location / optional customer a waterfall is computed for."""

    product_id: str
    location_id: str
    customer_id: Optional[str] = None

    def __str__(self) -> str:
        parts = [self.product_id, self.location_id]
        if self.customer_id:
            parts.append(self.customer_id)
        return "/".join(parts)


@dataclass(slots=True)
class Waterfall:
    """A computed waterfall with the fields the components table stores."""

    entity: WaterfallEntity
    waterfall_type: WaterfallType
    analysis_date: date
    components: List[WaterfallComponent]
    period_start: Optional[date] = None
    period_end: Optional[date] = None

    @property
    def start_value(self) -> float:
        return self.components[0].baseline_value if self.components else 0.0

    @property
    def end_value(self) -> float:
        return self.components[-1].final_value if self.components else self.start_value


@dataclass(slots=True)
class WaterfallInputs:
    """Already-fetched driver and period data for a set of entities."""

    driver_snapshots: Dict[Tuple[WaterfallEntity, date], ForecastDriverSnapshot] = field(
        default_factory=dict
    )
    periods: Dict[Tuple[WaterfallEntity, date], PeriodSnapshot] = field(
        default_factory=dict
    )

    def add_driver_snapshot(
        self, entity: WaterfallEntity, snapshot: ForecastDriverSnapshot
    ) -> None:
        self.driver_snapshots[(entity, snapshot.at_date)] = snapshot

    def add_period(self, entity: WaterfallEntity, snapshot: PeriodSnapshot) -> None:
        self.periods[(entity, snapshot.period)] = snapshot

    def driver_snapshot(
        self, entity: WaterfallEntity, at_date: date
    ) -> Optional[ForecastDriverSnapshot]:
        return self.driver_snapshots.get((entity, at_date))

    def period(self, entity: WaterfallEntity, period: date) -> Optional[PeriodSnapshot]:
        return self.periods.get((entity, period))
