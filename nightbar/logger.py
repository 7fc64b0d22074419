# nightbar/logger.py
import logging
from collections import deque
from typing import Callable, List

from .config import LOG_HISTORY_LIMIT
from .models import LogEvent

logger = logging.getLogger(__name__)

Listener = Callable[[LogEvent], None]


class UILogger:
    """
    Append-only sink for simulation events.
    publish() is fire-and-forget: it never raises and never waits on a listener.
    """

    def __init__(self, history_limit: int = LOG_HISTORY_LIMIT):
        self._history = deque(maxlen=history_limit)
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener):
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self, event: LogEvent):
        try:
            self._history.append(event)
            logger.debug("%s %s", event.kind, event.message)
        except Exception:
            logger.debug("Dropped UI event", exc_info=True)
            return

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.debug("UI listener %r failed", listener, exc_info=True)

    @property
    def history(self) -> List[LogEvent]:
        return list(self._history)

    def recent(self, n: int = 10) -> List[LogEvent]:
        if n <= 0:
            return []
        return list(self._history)[-n:]
