from __future__ import annotations

import logging
from dataclasses import dataclass

from forecast_recon.shared.logging import (
    configure_logging,
    get_logger,
    update_logging_from_settings,
)


def test_configure_logging_sets_root_handlers(tmp_path) -> None:
    log_file = tmp_path / "forecast_recon.log"
    configure_logging(level="DEBUG", file_path=str(log_file), environment="development")

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(isinstance(handler, logging.FileHandler) for handler in root.handlers)
    assert logging.getLogger("pymongo").level == logging.INFO

    logger = get_logger(__name__)
    logger.info("fair_share.redistributed", children=2)


def test_production_renders_json(tmp_path) -> None:
    log_file = tmp_path / "json.log"
    configure_logging(level="INFO", file_path=str(log_file), environment="production")

    get_logger("forecast_recon.test").info("accuracy.computed", scored=3)
    for handler in logging.getLogger().handlers:
        handler.flush()

    content = log_file.read_text(encoding="utf-8")
    assert '"event": "accuracy.computed"' in content
    assert '"scored": 3' in content


@dataclass
class _LoggingSettings:
    level: str = "WARNING"
    file_path: str | None = None


@dataclass
class _Settings:
    logging: _LoggingSettings
    environment: str = "production"


def test_update_logging_from_settings_applies_configuration() -> None:
    settings = _Settings(logging=_LoggingSettings(level="ERROR"))

    update_logging_from_settings(settings)

    root_logger = logging.getLogger()
    assert root_logger.level == logging.ERROR


def test_update_logging_ignores_incomplete_settings() -> None:
    configure_logging(level="INFO")

    update_logging_from_settings(object())

    assert logging.getLogger().level == logging.INFO
    get_logger("forecast_recon.test").info("still.logging")
