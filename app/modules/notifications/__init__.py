"""
Change notifications for credit and stock updates.

- schemas.py: event payloads
- service.py: notifier implementations (null, logging, recording, celery)
- tasks.py: Celery fan-out task
"""

from .schemas import ChangeEventType, CreditUpdateEvent, StockUpdateEvent
from .service import (
    ChangeNotifier, NullNotifier, LoggingNotifier, RecordingNotifier,
    CeleryNotifier, build_notifier
)

__all__ = [
    "ChangeEventType",
    "CreditUpdateEvent",
    "StockUpdateEvent",
    "ChangeNotifier",
    "NullNotifier",
    "LoggingNotifier",
    "RecordingNotifier",
    "CeleryNotifier",
    "build_notifier",
]
