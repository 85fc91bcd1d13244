from __future__ import annotations

import sys
from datetime import date
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

import pytest

from forecast_recon.domain.entities.hierarchy import (
    HierarchySnapshot,
    ProductHierarchyRow,
)
from forecast_recon.domain.entities.time_series import EntityKey, TimeSeriesPoint

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


JAN = date(2025, 1, 1)
FEB = date(2025, 2, 1)


def point(
    product_id: str,
    day: date,
    metric: str,
    value: Optional[float],
    customer_id: Optional[str] = None,
    location_id: Optional[str] = None,
) -> TimeSeriesPoint:
    return TimeSeriesPoint(
        entity_key=EntityKey(
            product_id=product_id, customer_id=customer_id, location_id=location_id
        ),
        date=day,
        metric_name=metric,
        value=value,
    )


@pytest.fixture()
def make_point() -> Callable[..., TimeSeriesPoint]:
    return point


@pytest.fixture()
def catalog_rows() -> List[ProductHierarchyRow]:
    return [
        ProductHierarchyRow("P1", "Bebidas", "Aguas", "Natural", "Sin gas"),
        ProductHierarchyRow("P2", "Bebidas", "Aguas", "Natural", "Con gas"),
        ProductHierarchyRow("P3", "Bebidas", "Jugos", "Naranja", "Natural"),
        ProductHierarchyRow("P4", "Bebidas", "Gaseosas", "Cola", "Regular"),
        ProductHierarchyRow("P5", "Snacks", "Papas", "Fritas", "Clasicas"),
    ]


@pytest.fixture()
def sample_hierarchy(catalog_rows: List[ProductHierarchyRow]) -> HierarchySnapshot:
    presence = {
        "P1": {"forecast", "actual"},
        "P2": {"forecast"},
        "P3": {"forecast", "actual"},
        "P5": {"actual"},
    }
    return HierarchySnapshot.from_products(catalog_rows, presence=presence)


@pytest.fixture()
def sample_points() -> List[TimeSeriesPoint]:
    return [
        point("P1", JAN, "forecast", 10, customer_id="C1", location_id="L1"),
        point("P1", JAN, "forecast", 4, customer_id="C2", location_id="L1"),
        point("P2", JAN, "forecast", 20, customer_id="C1", location_id="L1"),
        point("P3", JAN, "forecast", 5, customer_id="C1", location_id="L2"),
        point("P1", FEB, "forecast", 12, customer_id="C1", location_id="L1"),
        point("P3", FEB, "forecast", None, customer_id="C1", location_id="L2"),
        point("P1", JAN, "actual", 11, customer_id="C1", location_id="L1"),
        point("P3", JAN, "actual", 6, customer_id="C1", location_id="L2"),
        point("P4", JAN, "forecast", None, customer_id="C1", location_id="L1"),
        point("P5", JAN, "actual", 99, customer_id="C3", location_id="L3"),
    ]


class FakeCursor:
    def __init__(self, documents: Sequence[Dict[str, Any]]):
        self._documents = list(documents)
        self._skip = 0
        self._limit: int | None = None

    def sort(self, key: Any = None, direction: int = 1) -> "FakeCursor":
        if isinstance(key, str):
            self._documents.sort(key=lambda doc: doc.get(key), reverse=direction < 0)
        return self

    def skip(self, amount: int) -> "FakeCursor":
        self._skip = amount
        return self

    def limit(self, amount: int) -> "FakeCursor":
        self._limit = amount
        return self

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        docs = self._documents[self._skip :]
        if self._limit:
            docs = docs[: self._limit]
        return iter(docs)


class FakeCollection:
    def __init__(self) -> None:
        self.documents: List[Dict[str, Any]] = []
        self.last_query: Dict[str, Any] | None = None
        self.dropped_indexes: List[str] = []
        self.created_indexes: List[tuple[Any, ...]] = []

    def find(self, query: Dict[str, Any]) -> FakeCursor:
        self.last_query = query
        return FakeCursor([doc for doc in self.documents if self._matches(doc, query)])

    def replace_one(
        self, query: Dict[str, Any], document: Dict[str, Any], upsert: bool = False
    ) -> Any:
        for idx, existing in enumerate(self.documents):
            if self._matches(existing, query):
                self.documents[idx] = document
                return SimpleNamespace(matched_count=1, acknowledged=True)
        if upsert:
            self.documents.append(document)
            return SimpleNamespace(matched_count=0, acknowledged=True)
        return SimpleNamespace(matched_count=0, acknowledged=True)

    def update_many(self, query: Dict[str, Any], update: Dict[str, Any]) -> Any:
        modified = 0
        for document in self.documents:
            if self._matches(document, query):
                document.update(update.get("$set", {}))
                modified += 1
        return SimpleNamespace(modified_count=modified, acknowledged=True)

    def drop_index(self, index_name: str) -> None:
        self.dropped_indexes.append(index_name)

    def create_index(self, keys: Any, name: str | None = None, **kwargs: Any) -> Any:
        self.created_indexes.append((keys, name, kwargs))
        return name or keys

    @staticmethod
    def _matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
        for key, value in query.items():
            if document.get(key) != value:
                return False
        return True


class FakeMongoDatabase:
    def __init__(self) -> None:
        self.collections: Dict[str, FakeCollection] = {}
        self.fail_writes = False

    def get_collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())

    async def find_many(
        self,
        collection_name: str,
        query: Dict[str, Any],
        sort_by: str | None = None,
        sort_direction: int = 1,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        cursor = self.get_collection(collection_name).find(query)
        cursor.sort(sort_by, sort_direction)
        cursor.skip(skip)
        cursor.limit(limit)
        return list(cursor)

    async def upsert_one(
        self, collection_name: str, query: Dict[str, Any], document: Dict[str, Any]
    ) -> Dict[str, Any]:
        if self.fail_writes:
            raise RuntimeError("connection refused")
        self.get_collection(collection_name).replace_one(query, document, upsert=True)
        return document

    async def update_many(
        self, collection_name: str, query: Dict[str, Any], update: Dict[str, Any]
    ) -> int:
        if self.fail_writes:
            raise RuntimeError("connection refused")
        return self.get_collection(collection_name).update_many(query, update).modified_count

    async def create_indexes(self) -> None:  # pragma: no cover - stub for tests
        pass

    def close(self) -> None:
        pass


@pytest.fixture()
def fake_mongo_database() -> FakeMongoDatabase:
    return FakeMongoDatabase()
