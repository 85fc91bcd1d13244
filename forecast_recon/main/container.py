"""
Dependency container injection module - Main Layer

This module implements the dependency injection container
to simplify the management and lifecycle of dependencies
in the application.
"""

from contextlib import asynccontextmanager
from typing import Callable, Optional

from dependency_injector import containers, providers

from forecast_recon.application.use_cases.accuracy_use_cases import AccuracyUseCase
from forecast_recon.application.use_cases.analysis_cache import AnalysisCache
from forecast_recon.application.use_cases.pivot_use_cases import (
    ApplyAggregateEditUseCase,
    BuildPivotUseCase,
)
from forecast_recon.application.use_cases.series_ingestion_use_case import (
    SeriesIngestionUseCase,
)
from forecast_recon.application.use_cases.waterfall_use_cases import WaterfallUseCase
from forecast_recon.domain.repositories.analysis_cache_repository import (
    IAnalysisCacheRepository,
)
from forecast_recon.domain.services.accuracy_engine import AccuracyPolicy
from forecast_recon.infrastructure.database import MongoDatabase
from forecast_recon.infrastructure.repositories.analysis_cache_repository import (
    AnalysisCacheRepository,
)
from forecast_recon.shared import get_logger

from .config import AppSettings

logger = get_logger(__name__)


def _build_analysis_cache(
    enabled: bool,
    repository_provider: Callable[[], IAnalysisCacheRepository],
    ttl_seconds: int,
) -> AnalysisCache:
    # The Mongo client is only created when the cache is switched on.
    repository: Optional[IAnalysisCacheRepository] = (
        repository_provider() if enabled else None
    )
    return AnalysisCache(repository=repository, ttl_seconds=ttl_seconds, enabled=enabled)


class AppContainer(containers.DeclarativeContainer):
    """Composition Root using dependecy-injector."""

    # Settings
    config = providers.Configuration()

    # Infrastructure
    mongo_database = providers.Singleton(
        MongoDatabase,
        mongo_uri=config.database.mongo_uri,
        db_name=config.database.database_name,
        cache_collection=config.cache.collection,
    )

    analysis_cache_repository = providers.Singleton(
        AnalysisCacheRepository,
        mongo_database=mongo_database,
        collection_name=config.cache.collection,
    )

    analysis_cache = providers.Singleton(
        _build_analysis_cache,
        enabled=config.cache.enabled,
        repository_provider=analysis_cache_repository.provider,
        ttl_seconds=config.cache.ttl_seconds,
    )

    # Domain policy
    accuracy_policy = providers.Singleton(
        AccuracyPolicy,
        zero_actual_epsilon=config.reconciliation.zero_actual_epsilon,
        trend_margin=config.reconciliation.trend_margin,
    )

    # Application (use cases)
    series_ingestion_use_case = providers.Factory(SeriesIngestionUseCase)

    build_pivot_use_case = providers.Factory(BuildPivotUseCase)

    apply_aggregate_edit_use_case = providers.Factory(
        ApplyAggregateEditUseCase,
        editable_series=config.reconciliation.editable_series,
    )

    accuracy_use_case = providers.Factory(
        AccuracyUseCase,
        cache=analysis_cache,
        policy=accuracy_policy,
        default_threshold=config.reconciliation.accuracy_threshold,
    )

    waterfall_use_case = providers.Factory(
        WaterfallUseCase,
        cache=analysis_cache,
        precision=config.reconciliation.waterfall_precision,
    )


# -------------------------
# Global Container Instance
# -------------------------
_app_container: AppContainer | None = None


def init_container(settings: AppSettings) -> AppContainer:
    """Initialize global container with application settings."""

    global _app_container

    container = AppContainer()
    container.config.from_pydantic(settings)
    _app_container = container
    return container


def get_container() -> AppContainer:
    """Get the initialized global container."""

    if _app_container is None:
        raise RuntimeError("Container has not been initialized yet")

    return _app_container


@asynccontextmanager
async def app_lifespan():
    """
    Lifecycle management for the external resources of the container.

    With the analysis cache enabled, the cache indexes are created on entry
    and the Mongo client is closed on exit. Without it nothing is opened.
    """
    container = get_container()
    cache_enabled = bool(container.config.cache.enabled())
    mongo_database = container.mongo_database() if cache_enabled else None

    try:
        if mongo_database is not None:
            logger.info("container.mongo.ensure_indexes")
            await mongo_database.create_indexes()

        logger.info("container.resources.initialized", cache_enabled=cache_enabled)
        yield container

    finally:
        if mongo_database is not None:
            logger.info("container.mongo.close")
            mongo_database.close()

        logger.info("container.resources.shutdown")
