"""
Fan-out of change events after a successful mutation.

The dispatcher hands each event to a thread pool and returns immediately, so
the HTTP response never waits on the event log or on live subscribers. Both
channels are best-effort: every failure is logged here and goes no further.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_for_futures
from threading import Lock
from typing import Any, Optional, Set

from .broadcaster import LiveBroadcaster
from .entities import EntityKind
from .models import ChangeEvent

logger = logging.getLogger(__name__)


class FanoutDispatcher:
    """
    Dispatches change events to the event log and the live broadcaster.

    Attributes:
        publisher: Object exposing ``publish(topic, event)``
        broadcaster: Live hub exposing ``broadcast(event_name, payload)``
    """

    def __init__(self, publisher: Any, broadcaster: LiveBroadcaster, max_workers: int = 4) -> None:
        self.publisher = publisher
        self.broadcaster = broadcaster
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fanout")
        self._pending: Set[Future] = set()
        self._lock = Lock()

    def _submit(self, fn, *args: Any) -> None:
        future = self._executor.submit(fn, *args)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def dispatch(self, kind: EntityKind, event: ChangeEvent) -> None:
        """
        Queue the event for publishing and, if enabled for the kind, live push.

        Both tasks are submitted before this method returns; neither is awaited.
        A task that cannot be queued (e.g. after shutdown) is logged and dropped.
        """
        try:
            self._submit(self._publish, kind.topic, event)
        except Exception:
            logger.exception(f"Could not queue {event.event.value} event for {kind.topic}")
        if kind.broadcast_enabled:
            event_name = kind.live_event_name(event.event)
            try:
                self._submit(self._broadcast, event_name, event.data)
            except Exception:
                logger.exception(f"Could not queue broadcast of {event_name}")

    def _publish(self, topic: str, event: ChangeEvent) -> None:
        try:
            self.publisher.publish(topic, event)
        except Exception:
            logger.exception(f"Failed to publish {event.event.value} event to {topic}")

    def _broadcast(self, event_name: str, payload: dict) -> None:
        try:
            self.broadcaster.broadcast(event_name, payload)
        except Exception:
            logger.exception(f"Failed to broadcast {event_name}")

    def drain(self, timeout: Optional[float] = None) -> None:
        """Block until every dispatched task has finished (or timeout elapses)."""
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait_for_futures(pending, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
