"""
Bootstrap - Main Layer

Start-up sequence for callers embedding the reconciliation core: logging
first, then settings, then the container.
"""

from typing import Optional

from forecast_recon.main.config import AppSettings, get_settings
from forecast_recon.main.container import AppContainer, init_container
from forecast_recon.shared import configure_logging, get_logger, update_logging_from_settings


def bootstrap(settings: Optional[AppSettings] = None) -> AppContainer:
    """
    Configure logging and build the global container.

    Args:
        settings: Settings to use; loaded from the environment when omitted

    Returns:
        The initialized container
    """
    # Basic logging so that problems while loading the settings are visible.
    configure_logging()
    app_settings = settings or get_settings()
    update_logging_from_settings(app_settings)

    container = init_container(app_settings)
    get_logger(__name__).info(
        "bootstrap.completed",
        environment=app_settings.environment.value,
        cache_enabled=app_settings.cache.enabled,
    )
    return container
