"""Push-based feeds over the sample store and collection state.

:class:`Broadcast` is the publish/subscribe primitive: it always holds a
current value and replays it to every new subscriber before any later
update. Consumers that fall behind only ever see the newest value
(conflation); for snapshot feeds nothing is lost by that.

All publishing happens on the event loop thread.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pygeotrack.exceptions import StorageFault
from pygeotrack.models.sample import LocationSample
from pygeotrack.models.state import CollectionState
from pygeotrack.store.base import SampleStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription(Generic[T]):
    """One consumer's view of a :class:`Broadcast`.

    Iterate it with ``async for``; the first value is the broadcast's value
    at subscription time. Iteration ends once the subscription or its
    broadcast is closed.
    """

    def __init__(self, broadcast: Broadcast[T]) -> None:
        self._broadcast = broadcast
        self._ready = asyncio.Event()
        self._pending: T | None = None
        self._has_pending = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, value: T) -> None:
        self._pending = value
        self._has_pending = True
        self._ready.set()

    async def get(self) -> T:
        """Wait for and return the next value.

        Raises :class:`StopAsyncIteration` once closed and drained.
        """
        while True:
            if self._has_pending:
                value = self._pending
                self._pending = None
                self._has_pending = False
                self._ready.clear()
                return value  # type: ignore[return-value]
            if self._closed:
                raise StopAsyncIteration
            self._ready.clear()
            await self._ready.wait()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._broadcast._detach(self)
        self._ready.set()

    def __aiter__(self) -> Subscription[T]:
        return self

    async def __anext__(self) -> T:
        return await self.get()

    async def __aenter__(self) -> Subscription[T]:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()


class Broadcast(Generic[T]):
    """Replay-latest broadcast channel.

    Publishing a value equal to the current one is a no-op.
    """

    def __init__(self, initial: T, *, name: str = "") -> None:
        self._value = initial
        self._name = name
        self._subscriptions: list[Subscription[T]] = []
        self._listeners: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions) + len(self._listeners)

    def publish(self, value: T) -> None:
        if value == self._value:
            return
        self._value = value
        for subscription in list(self._subscriptions):
            subscription._offer(value)
        for listener in list(self._listeners):
            self._notify(listener, value)

    def _notify(self, listener: Callable[[T], None], value: T) -> None:
        try:
            listener(value)
        except Exception:
            _logger.debug("%s listener failed", self._name or "broadcast", exc_info=True)

    def subscribe(self) -> Subscription[T]:
        subscription = Subscription(self)
        subscription._offer(self._value)
        self._subscriptions.append(subscription)
        return subscription

    def listen(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register *callback*, call it with the current value, return an unsubscribe function."""
        self._listeners.append(callback)
        self._notify(callback, self._value)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def close(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.close()
        self._listeners.clear()

    def _detach(self, subscription: Subscription[T]) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)


class FeedPublisher:
    """Expose store contents and collection state as broadcast feeds.

    ``sample_appended`` and ``state_changed`` are the hooks the collection
    loop and lifecycle controller call; everything else is for consumers.
    """

    def __init__(self, store: SampleStore, *, initial_state: CollectionState | None = None) -> None:
        self._store = store
        snapshot = store.scan_all_ordered_by_time()
        self._samples: Broadcast[tuple[LocationSample, ...]] = Broadcast(snapshot, name="samples")
        self._latest: Broadcast[LocationSample | None] = Broadcast(
            snapshot[-1] if snapshot else None,
            name="latest",
        )
        self._state: Broadcast[CollectionState] = Broadcast(initial_state or CollectionState(), name="state")

    @property
    def samples(self) -> Broadcast[tuple[LocationSample, ...]]:
        return self._samples

    @property
    def latest(self) -> Broadcast[LocationSample | None]:
        return self._latest

    @property
    def state(self) -> Broadcast[CollectionState]:
        return self._state

    def observe_samples(self) -> Subscription[tuple[LocationSample, ...]]:
        """Full time-ordered snapshot now, then again after every append."""
        return self._samples.subscribe()

    def observe_latest(self) -> Subscription[LocationSample | None]:
        return self._latest.subscribe()

    def observe_state(self) -> Subscription[CollectionState]:
        return self._state.subscribe()

    def refresh(self) -> None:
        """Re-read the store and publish a fresh snapshot."""
        try:
            snapshot = self._store.scan_all_ordered_by_time()
        except StorageFault as exc:
            _logger.warning("Could not refresh sample feed: %s", exc)
            return
        self._samples.publish(snapshot)
        self._latest.publish(snapshot[-1] if snapshot else None)

    def sample_appended(self, sample: LocationSample) -> None:
        _logger.debug("Publishing snapshot after append id=%d", sample.id)
        self.refresh()

    def state_changed(self, state: CollectionState) -> None:
        self._state.publish(state)

    def close(self) -> None:
        self._samples.close()
        self._latest.close()
        self._state.close()
