import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    message: str
    is_error: bool = False
    error: Optional[BaseException] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        return self.message


Subscriber = Callable[[ProgressEvent], None]


def log_subscriber(event: ProgressEvent) -> None:
    if event.is_error:
        logger.error(event.message)
    else:
        logger.info(event.message)


class ProgressEvents:
    """
    Broadcast of status strings to any number of observers.

    Delivery is synchronous and in emission order. With no subscribers an
    event is simply dropped; a failing subscriber is logged and the rest still
    receive the event.
    """

    def __init__(self, default: Optional[Subscriber] = log_subscriber):
        self._default = default
        self._subscribers: List[Subscriber] = []
        if default is not None:
            self._subscribers.append(default)

    def subscribe(self, handler: Subscriber) -> Subscriber:
        self._subscribers.append(handler)
        return handler

    def unsubscribe(self, handler: Subscriber) -> None:
        try:
            self._subscribers.remove(handler)
        except ValueError:
            pass

    def clear(self) -> None:
        self._subscribers.clear()

    @property
    def subscribers(self) -> List[Subscriber]:
        return list(self._subscribers)

    def emit(self, message: str, is_error: bool = False, error: Optional[BaseException] = None) -> ProgressEvent:
        event = ProgressEvent(message=message, is_error=is_error, error=error)
        for handler in list(self._subscribers):
            try:
                handler(event)
            except Exception as e:
                logger.warning(f"Progress subscriber {handler!r} failed: {e}")
        return event
