"""
Change Notifier: event emission seam called by the credit and stock engines.

Delivery is fire-and-forget. A failing transport is logged and never
propagates into the caller's mutation.
"""
import logging
from abc import ABC, abstractmethod
from threading import Lock
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel

from app.core.config import settings
from app.modules.notifications.schemas import ChangeEventType

logger = logging.getLogger(__name__)

EventType = Union[ChangeEventType, str]


class ChangeNotifier(ABC):
    """Base notifier. Subclasses implement `_deliver`; `emit` never raises."""

    def emit(self, event_type: EventType, payload: BaseModel) -> None:
        event_name = ChangeEventType(event_type).value
        try:
            self._deliver(event_name, payload)
        except Exception as e:
            logger.error(f"Failed to deliver {event_name} event: {e}", exc_info=True)

    @abstractmethod
    def _deliver(self, event_type: str, payload: BaseModel) -> None:
        ...


class NullNotifier(ChangeNotifier):
    """Default notifier: drops every event."""

    def _deliver(self, event_type: str, payload: BaseModel) -> None:
        return None


class LoggingNotifier(ChangeNotifier):
    def _deliver(self, event_type: str, payload: BaseModel) -> None:
        logger.info(f"{event_type}: {payload.model_dump_json()}")


class RecordingNotifier(ChangeNotifier):
    """Keeps emitted events in memory, for in-process consumers and tests."""

    def __init__(self):
        self._lock = Lock()
        self.events: List[Tuple[str, BaseModel]] = []

    def _deliver(self, event_type: str, payload: BaseModel) -> None:
        with self._lock:
            self.events.append((event_type, payload))

    def of_type(self, event_type: EventType) -> List[BaseModel]:
        name = ChangeEventType(event_type).value
        with self._lock:
            return [payload for kind, payload in self.events if kind == name]

    def clear(self) -> None:
        with self._lock:
            self.events.clear()


class CeleryNotifier(ChangeNotifier):
    """Queues events on the Celery broker for out-of-process consumers."""

    def __init__(self, task=None):
        if task is None:
            from app.modules.notifications.tasks import broadcast_change
            task = broadcast_change
        self._task = task

    def _deliver(self, event_type: str, payload: BaseModel) -> None:
        self._task.delay(event_type, payload.model_dump(mode="json"))


def build_notifier(backend: Optional[str] = None) -> ChangeNotifier:
    backend = backend or settings.NOTIFIER_BACKEND
    if backend == "log":
        return LoggingNotifier()
    if backend == "celery":
        return CeleryNotifier()
    if backend != "null":
        logger.warning(f"Unknown notifier backend '{backend}', falling back to null notifier")
    return NullNotifier()
