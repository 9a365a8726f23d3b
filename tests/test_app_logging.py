"""Tests for logging configuration."""

import logging

from nutrition_sync.app_logging import configure_logging
from nutrition_sync.services.notifications import LoggingNotifier, NotificationEvent


class _RecordingHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_configure_logging_idempotent(monkeypatch) -> None:
    logger = logging.getLogger("nutrition_sync")
    monkeypatch.setattr(logger, "handlers", [])
    monkeypatch.setattr(logger, "propagate", logger.propagate)
    monkeypatch.setattr(logger, "level", logger.level)

    configure_logging()
    first_count = len(logger.handlers)

    configure_logging()
    second_count = len(logger.handlers)

    assert first_count == 1
    assert second_count == 1


def test_logging_notifier_levels(monkeypatch) -> None:
    logger = logging.getLogger("nutrition_sync")
    handler = _RecordingHandler()
    monkeypatch.setattr(logger, "handlers", [handler])
    monkeypatch.setattr(logger, "propagate", False)
    monkeypatch.setattr(logger, "level", logger.level)
    logger.setLevel(logging.INFO)
    notifier = LoggingNotifier()

    notifier.notify(NotificationEvent("water", "added", {"current": 500}))
    notifier.notify(NotificationEvent("sync", "failed", severity="destructive"))

    levels = [record.levelno for record in handler.records]
    assert levels == [logging.INFO, logging.WARNING]
    assert "water.added" in handler.records[0].getMessage()
