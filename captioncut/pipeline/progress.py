"""
captioncut.pipeline.progress - Progress events and subscriber fan-out.

Every subscriber owns a bounded queue. Publishing never blocks: a
subscriber whose queue is full or that has closed is dropped, so a slow
observer cannot stall a pipeline run.
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Iterator

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100

CONNECTED_EVENT = {"status": "connected"}
TERMINAL_STATUSES = frozenset({"complete", "failed"})

_CLOSED = object()


@dataclass(frozen=True)
class ProgressEvent:
    step: int
    total_steps: int
    step_name: str
    status: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "step": self.step,
            "total_steps": self.total_steps,
            "step_name": self.step_name,
            "status": self.status,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


def format_sse(event: dict[str, Any]) -> str:
    """Frame an event as a server-sent-event message."""
    return f"data: {json.dumps(event)}\n\n"


def is_terminal(event: dict[str, Any]) -> bool:
    return event.get("status") in TERMINAL_STATUSES


class Subscription:
    """One observer's view of the progress stream.

    The first event is always the connection handshake. Iterating yields
    events until the subscription is closed or dropped.
    """

    def __init__(self, broadcaster: ProgressBroadcaster, maxsize: int = DEFAULT_QUEUE_SIZE):
        self._broadcaster = broadcaster
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()
        self._queue.put_nowait(dict(CONNECTED_EVENT))

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def deliver(self, event: dict[str, Any]) -> bool:
        """Queue an event without blocking. False means the subscriber is gone."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            return False
        return True

    def get(self, timeout: float | None = None) -> dict[str, Any] | None:
        """Next event, or None once closed and drained.

        Raises:
            queue.Empty: If ``timeout`` elapses with nothing to read
        """
        if self.closed and self._queue.empty():
            return None
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            return None
        return item

    def close(self) -> None:
        if self.closed:
            return
        self._closed.set()
        self._broadcaster.unsubscribe(self)
        try:
            self._queue.put_nowait(_CLOSED)
        except queue.Full:
            pass

    def _drop(self) -> None:
        self._closed.set()

    def __iter__(self) -> Iterator[dict[str, Any]]:
        while True:
            try:
                event = self.get(timeout=0.5)
            except queue.Empty:
                if self.closed:
                    return
                continue
            if event is None:
                return
            yield event

    def sse_messages(self) -> Iterator[str]:
        for event in self:
            yield format_sse(event)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ProgressBroadcaster:
    """Thread-safe publish/subscribe hub for pipeline progress."""

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self._subscribers: set[Subscription] = set()
        self._lock = threading.Lock()
        self.queue_size = queue_size

    def subscribe(self) -> Subscription:
        subscription = Subscription(self, maxsize=self.queue_size)
        with self._lock:
            self._subscribers.add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscribers.discard(subscription)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: ProgressEvent | dict[str, Any]) -> None:
        """Deliver an event to every subscriber, dropping those that cannot keep up."""
        payload = event.to_dict() if isinstance(event, ProgressEvent) else dict(event)

        with self._lock:
            subscribers = list(self._subscribers)

        closed: list[Subscription] = []
        dropped: list[Subscription] = []
        for subscription in subscribers:
            if subscription.deliver(payload):
                continue
            # Closed since the snapshot was taken
            (closed if subscription.closed else dropped).append(subscription)

        if closed or dropped:
            with self._lock:
                for subscription in closed + dropped:
                    self._subscribers.discard(subscription)
        if dropped:
            for subscription in dropped:
                subscription._drop()
            logger.warning("Dropped %d progress subscriber(s) that fell behind", len(dropped))
