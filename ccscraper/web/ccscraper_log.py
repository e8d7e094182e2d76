# ccscraper/web/ccscraper_log.py
from __future__ import annotations

import asyncio
import contextlib
import logging


class LogBroker:
    """
    Fan-out log broker.

    Each subscriber gets its own asyncio.Queue.
    publish() is non-blocking; if a subscriber is too slow, we drop messages for that subscriber.
    """

    def __init__(self, max_queue_size: int = 1000) -> None:
        self._subscribers: set[asyncio.Queue[str]] = set()
        self._max_queue_size = max_queue_size
        self._lock = asyncio.Lock()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def connect(self) -> asyncio.Queue[str]:
        q: asyncio.Queue[str] = asyncio.Queue(maxsize=self._max_queue_size)
        async with self._lock:
            self._subscribers.add(q)
        return q

    async def disconnect(self, q: asyncio.Queue[str]) -> None:
        async with self._lock:
            self._subscribers.discard(q)

    def publish(self, message: str) -> None:
        # Called from logging handlers; avoid awaits.
        subscribers = tuple(self._subscribers)
        for q in subscribers:
            try:
                q.put_nowait(message)
            except asyncio.QueueFull:
                # Drop the oldest line to make room; if still full, drop this one.
                with contextlib.suppress(asyncio.QueueEmpty):
                    q.get_nowait()
                with contextlib.suppress(asyncio.QueueFull):
                    q.put_nowait(message)


class BrokerHandler(logging.Handler):
    """Logging handler that forwards formatted records to a :class:`LogBroker`."""

    def __init__(self, target: LogBroker, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.target = target
        self.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"),
        )

    def emit(self, record: logging.LogRecord) -> None:
        if not self.target.subscriber_count:
            return
        try:
            self.target.publish(self.format(record))
        except Exception:  # noqa: BLE001 - logging must never raise into callers
            self.handleError(record)


# Singleton broker
broker = LogBroker()


def install_broker_handler(logger_name: str = "ccscraper") -> BrokerHandler:
    """Attach one :class:`BrokerHandler` to ``logger_name`` (idempotent)."""
    target = logging.getLogger(logger_name)
    for h in target.handlers:
        if isinstance(h, BrokerHandler):
            return h
    handler = BrokerHandler(broker)
    target.addHandler(handler)
    return handler
