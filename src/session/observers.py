# src/session/observers.py — v1
"""Progress observation: fan-out of stats snapshots to subscribers.

Subscribers never hold a reference to the live counters. Each one gets
its own queue of immutable snapshots, starting with the current state at
subscribe time. A subscriber that falls behind loses intermediate
snapshots, never the most recent one.
"""

from __future__ import annotations

import asyncio
import logging

from photoingest.core.models import IngestionStats

logger = logging.getLogger(__name__)

_END = object()


class StatsSubscription:
    """Async iterator over stats snapshots for one observer.

    Iteration ends when the subscription is closed, either by the
    observer or because the session reached a terminal state.
    """

    def __init__(self, broadcaster: StatsBroadcaster, maxsize: int = 100) -> None:
        self._broadcaster = broadcaster
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._latest: IngestionStats | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def latest(self) -> IngestionStats | None:
        """Most recent snapshot delivered to this subscription."""
        return self._latest

    def close(self) -> None:
        """Detach from the broadcaster. Pending snapshots are still drained."""
        if self._closed:
            return
        self._closed = True
        self._broadcaster._detach(self)
        self._offer(_END)

    def _push(self, snapshot: IngestionStats) -> None:
        if self._closed:
            return
        self._latest = snapshot
        self._offer(snapshot)

    def _offer(self, item: object) -> None:
        if self._queue.full():
            # Drop the oldest snapshot; the newest always wins.
            self._queue.get_nowait()
        self._queue.put_nowait(item)

    def __aiter__(self) -> StatsSubscription:
        return self

    async def __anext__(self) -> IngestionStats:
        item = await self._queue.get()
        if item is _END:
            raise StopAsyncIteration
        return item  # type: ignore[return-value]


class StatsBroadcaster:
    """Publishes snapshots to every attached subscription."""

    def __init__(self, initial: IngestionStats | None = None) -> None:
        self._current = initial or IngestionStats()
        self._subscribers: list[StatsSubscription] = []
        self._finished = False

    @property
    def current(self) -> IngestionStats:
        return self._current

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> StatsSubscription:
        """Attach a new observer and hand it the current snapshot."""
        sub = StatsSubscription(self)
        sub._push(self._current)
        if self._finished:
            sub.close()
        else:
            self._subscribers.append(sub)
        return sub

    def publish(self, snapshot: IngestionStats) -> None:
        self._current = snapshot
        for sub in list(self._subscribers):
            sub._push(snapshot)

    def finish(self) -> None:
        """Close every subscription. Later subscribers get one snapshot and end."""
        self._finished = True
        for sub in list(self._subscribers):
            sub.close()
        logger.debug("Stats stream finished")

    def _detach(self, sub: StatsSubscription) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)
