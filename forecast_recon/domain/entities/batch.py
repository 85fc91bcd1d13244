"""Partial-success container for batch computations."""

from dataclasses import dataclass, field
from typing import Dict, Generic, List, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class BatchFailure:
    entity_key: str
    error_type: str
    message: str


@dataclass(slots=True)
class BatchResult(Generic[T]):
    """Results of a batch keyed by entity, with per-entity failures kept apart."""

    succeeded: Dict[str, T] = field(default_factory=dict)
    failed: List[BatchFailure] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.failed) and bool(self.succeeded)

    @property
    def failed_keys(self) -> List[str]:
        return [failure.entity_key for failure in self.failed]
