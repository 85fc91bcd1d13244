"""
Main module - Main/Composition Root Layer

This module wires the layers together: it loads the settings, configures
logging and builds the dependency container.

Its primary responsibilities include:
- Loading configuration (pydantic-settings)
- Configuring dependencies and services (Composition Root)
- Managing the lifecycle of the optional Mongo analysis cache
"""

from .config import AppSettings, get_settings
from .bootstrap import bootstrap
from .container import AppContainer, app_lifespan, get_container, init_container

__all__ = [
    "AppSettings",
    "get_settings",
    "AppContainer",
    "app_lifespan",
    "bootstrap",
    "init_container",
    "get_container",
]
