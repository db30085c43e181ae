"""Notification sinks handed to the pipeline in place of a global toast service."""
from __future__ import annotations

import logging
from typing import List, Protocol

from backend.cvtailor.models.contracts import Notification

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, title: str, description: str, variant: str = "default") -> None:
        ...


class LoggingNotifier:
    def notify(self, title: str, description: str, variant: str = "default") -> None:
        level = logging.WARNING if variant == "destructive" else logging.INFO
        logger.log(level, "%s: %s", title, description)


class RecordingNotifier(LoggingNotifier):
    """Keeps notifications until the client drains them with ``drain()``."""

    def __init__(self):
        self.items: List[Notification] = []

    def notify(self, title: str, description: str, variant: str = "default") -> None:
        super().notify(title, description, variant)
        self.items.append(Notification(title=title, description=description, variant=variant))

    def drain(self) -> List[Notification]:
        items, self.items = self.items, []
        return items
