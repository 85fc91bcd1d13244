from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import cast

import pytest

from forecast_recon.domain.entities.analysis_cache import AnalysisType, CachedAnalysis
from forecast_recon.domain.entities.errors import AnalysisCacheError
from forecast_recon.infrastructure.database import MongoDatabase
from forecast_recon.infrastructure.repositories.analysis_cache_repository import (
    AnalysisCacheRepository,
    cache_key,
)

PARAMS = {"entity_kind": "product", "threshold": 75.0}


def _repository(fake_mongo_database) -> AnalysisCacheRepository:
    return AnalysisCacheRepository(cast(MongoDatabase, fake_mongo_database))


def test_cache_key_ignores_parameter_order() -> None:
    assert cache_key(AnalysisType.ACCURACY, {"a": 1, "b": 2}) == cache_key(
        AnalysisType.ACCURACY, {"b": 2, "a": 1}
    )
    assert cache_key(AnalysisType.ACCURACY, PARAMS) != cache_key(
        AnalysisType.WATERFALL_BUILD_UP, PARAMS
    )


@pytest.mark.asyncio
async def test_save_and_find_valid(fake_mongo_database) -> None:
    repository = _repository(fake_mongo_database)
    entry = CachedAnalysis.with_ttl(AnalysisType.ACCURACY, PARAMS, {"records": []}, 60)

    await repository.save(entry)
    found = await repository.find_valid(AnalysisType.ACCURACY, dict(PARAMS))

    assert found is not None
    assert found.id == entry.id
    assert found.analysis_result == {"records": []}
    assert await repository.find_valid(AnalysisType.ACCURACY, {"threshold": 10}) is None


@pytest.mark.asyncio
async def test_save_replaces_entry_with_same_key(fake_mongo_database) -> None:
    repository = _repository(fake_mongo_database)

    await repository.save(CachedAnalysis(AnalysisType.ACCURACY, PARAMS, 1))
    await repository.save(CachedAnalysis(AnalysisType.ACCURACY, PARAMS, 2))

    documents = fake_mongo_database.get_collection("analysis_cache").documents
    assert len(documents) == 1
    assert documents[0]["analysis_result"] == 2


@pytest.mark.asyncio
async def test_expired_entries_are_not_returned(fake_mongo_database) -> None:
    repository = _repository(fake_mongo_database)
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    entry = CachedAnalysis(
        AnalysisType.ACCURACY,
        PARAMS,
        {},
        computed_at=past,
        expires_at=past + timedelta(hours=1),
    )

    await repository.save(entry)

    assert await repository.find_valid(AnalysisType.ACCURACY, PARAMS) is None


@pytest.mark.asyncio
async def test_invalidate_by_type_and_parameters(fake_mongo_database) -> None:
    repository = _repository(fake_mongo_database)
    await repository.save(CachedAnalysis(AnalysisType.ACCURACY, PARAMS, 1))
    await repository.save(CachedAnalysis(AnalysisType.ACCURACY, {"threshold": 10}, 2))
    await repository.save(CachedAnalysis(AnalysisType.WATERFALL_BUILD_UP, PARAMS, 3))

    assert await repository.invalidate(AnalysisType.ACCURACY, PARAMS) == 1
    assert await repository.find_valid(AnalysisType.ACCURACY, PARAMS) is None
    assert await repository.invalidate(AnalysisType.ACCURACY) == 1
    assert await repository.find_valid(AnalysisType.WATERFALL_BUILD_UP, PARAMS) is not None


@pytest.mark.asyncio
async def test_write_failures_are_wrapped(fake_mongo_database) -> None:
    fake_mongo_database.fail_writes = True
    repository = _repository(fake_mongo_database)

    with pytest.raises(AnalysisCacheError):
        await repository.save(CachedAnalysis(AnalysisType.ACCURACY, PARAMS, 1))

    with pytest.raises(AnalysisCacheError):
        await repository.invalidate(AnalysisType.ACCURACY)
