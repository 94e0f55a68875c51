"""Single-producer, single-consumer event channel for streaming processing."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Iterator, Optional

from meeting_processor.models.events import ErrorEvent

logger = logging.getLogger(__name__)

_END = object()


class EventChannel:
    """
    Ordered hand-off of processing events from a producer to a consumer.

    The producer calls ``send`` and finally ``close``; the consumer pulls with
    ``receive`` (or iterates) and may ``cancel`` at any time. Once a terminal
    event has been sent, nothing further is delivered.
    """

    def __init__(self) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._closed = False
        self._terminated = False
        self._drained = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def terminated(self) -> bool:
        """True once a terminal event has been sent."""
        return self._terminated

    def send(self, event) -> bool:
        """Queue an event. Returns False if it was dropped."""
        with self._lock:
            if self._closed or self._terminated or self._cancelled.is_set():
                logger.debug(f"Dropping {event.type} event on finished channel")
                return False
            if event.terminal:
                self._terminated = True
            self._queue.put(event)
            return True

    def close(self) -> None:
        """Producer side: no more events will be sent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_END)

    def cancel(self) -> None:
        """Consumer side: stop accepting events and signal the producer."""
        self._cancelled.set()

    def wait_cancelled(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds, returning early (True) on cancel."""
        return self._cancelled.wait(timeout)

    def receive(self, timeout: Optional[float] = None):
        """
        Block for the next event.

        Returns:
            The next event, or None once the producer has closed the channel

        Raises:
            queue.Empty: If ``timeout`` elapses first
        """
        if self._drained:
            return None
        item = self._queue.get(timeout=timeout)
        if item is _END:
            self._drained = True
            return None
        return item

    def __iter__(self) -> Iterator:
        while True:
            event = self.receive()
            if event is None:
                return
            yield event


def stream_events(
    producer: Callable[[EventChannel], None],
    name: str = "event-stream",
    failure_message: str = "Failed to process meeting",
) -> Iterator:
    """
    Run ``producer`` on a worker thread and yield its events in order.

    The stream always ends with a terminal event unless the consumer stops
    early; stopping (closing the generator) cancels the channel so the
    producer can wind down.
    """
    channel = EventChannel()

    def _run() -> None:
        try:
            producer(channel)
        except Exception:
            logger.exception("Event producer failed")
            channel.send(ErrorEvent(content=failure_message))
        finally:
            channel.close()

    worker = threading.Thread(target=_run, name=name, daemon=True)
    worker.start()

    saw_terminal = False
    try:
        for event in channel:
            saw_terminal = event.terminal
            yield event
            if saw_terminal:
                break
        if not saw_terminal and not channel.cancelled:
            logger.error("Event producer finished without a terminal event")
            yield ErrorEvent(content=failure_message)
    finally:
        channel.cancel()
