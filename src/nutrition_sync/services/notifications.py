"""Notification events raised by the store for the presentation layer."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationEvent:
    """A (category, outcome) pair with optional interpolation parameters."""

    category: str
    outcome: str
    params: dict[str, object] = field(default_factory=dict)
    severity: str = "default"


class Notifier(Protocol):
    """Interface for surfacing store events to the user."""

    def notify(self, event: NotificationEvent) -> None:
        """Deliver a notification event."""


@dataclass
class LoggingNotifier(Notifier):
    """Notifier that writes events to the application log."""

    def notify(self, event: NotificationEvent) -> None:
        """Log the event; destructive events are logged as warnings."""
        level = logging.WARNING if event.severity == "destructive" else logging.INFO
        _logger.log(
            level,
            "Notification %s.%s params=%s",
            event.category,
            event.outcome,
            event.params,
        )
