"""In-process change bus — implements ChangeBus.

Handlers run synchronously, in subscription order, on the emitting call.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

from portal.ports.notification_port import Handler, Topic

logger = logging.getLogger(__name__)


class LocalChangeBus:
    """Typed pub/sub confined to the current process."""

    def __init__(self) -> None:
        self._handlers: dict[Topic, list[Handler]] = defaultdict(list)

    def subscribe(self, topic: Topic, handler: Handler) -> Callable[[], None]:
        """Register a handler; returns a callable that removes it again."""
        topic = Topic(topic)
        self._handlers[topic].append(handler)

        def unsubscribe() -> None:
            try:
                self._handlers[topic].remove(handler)
            except ValueError:
                pass  # already removed

        return unsubscribe

    def emit(self, topic: Topic, payload: Any = None) -> None:
        topic = Topic(topic)
        handlers = list(self._handlers.get(topic, ()))
        logger.debug("Emitting %s to %d handler(s)", topic.value, len(handlers))
        for handler in handlers:
            # The write has already happened; a broken view must not undo it
            try:
                handler(topic, payload)
            except Exception:
                logger.exception("Handler for %s failed", topic.value)

    def handler_count(self, topic: Topic) -> int:
        return len(self._handlers.get(Topic(topic), ()))
