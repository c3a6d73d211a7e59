"""
Publish-Subscribe Primitives

Observable holds a value and notifies subscribers on every set.
Derived recomputes from one or more sources:
- eagerly, when something subscribes to it
- lazily, on read, when nothing does

Subscribers are called synchronously, in subscription order.
"""

from itertools import count
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar


T = TypeVar("T")

Subscriber = Callable[[T], None]
Unsubscribe = Callable[[], None]


class _Subscribers(Generic[T]):
    """Ordered subscriber registry; each subscription gets its own token."""

    def __init__(self):
        self._callbacks: dict[int, Subscriber] = {}
        self._tokens = count()

    def add(self, callback: Subscriber) -> Unsubscribe:
        token = next(self._tokens)
        self._callbacks[token] = callback

        def unsubscribe() -> None:
            self._callbacks.pop(token, None)

        return unsubscribe

    def notify(self, value: T) -> None:
        for callback in list(self._callbacks.values()):
            callback(value)

    def __len__(self) -> int:
        return len(self._callbacks)


class Observable(Generic[T]):
    """A mutable value container."""

    def __init__(self, value: T):
        self._value = value
        self._subscribers: _Subscribers[T] = _Subscribers()

    @property
    def value(self) -> T:
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def set(self, value: T) -> None:
        self._value = value
        self._subscribers.notify(value)

    def update(self, fn: Callable[[T], T]) -> None:
        self.set(fn(self._value))

    def subscribe(self, callback: Subscriber, immediate: bool = True) -> Unsubscribe:
        """
        Register `callback`; it receives the current value immediately
        unless `immediate` is False.
        """
        unsubscribe = self._subscribers.add(callback)
        if immediate:
            callback(self._value)
        return unsubscribe


class Derived(Generic[T]):
    """
    A read-only value computed from other observables.

    `compute` receives the current value of each source, in order.
    The result is memoized until a source changes.
    """

    def __init__(self, sources: Sequence[Any], compute: Callable[..., T]):
        self._sources = list(sources)
        self._compute = compute
        self._value: Optional[T] = None
        self._dirty = True
        self._subscribers: _Subscribers[T] = _Subscribers()
        self._source_unsubscribers = [
            source.subscribe(self._on_source_change, immediate=False)
            for source in self._sources
        ]

    @property
    def value(self) -> T:
        if self._dirty:
            self._recompute()
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _recompute(self) -> None:
        self._value = self._compute(*(source.value for source in self._sources))
        self._dirty = False

    def _on_source_change(self, _value: Any) -> None:
        self._dirty = True
        if len(self._subscribers):
            self._recompute()
            self._subscribers.notify(self._value)

    def subscribe(self, callback: Subscriber, immediate: bool = True) -> Unsubscribe:
        unsubscribe = self._subscribers.add(callback)
        if immediate:
            callback(self.value)
        return unsubscribe

    def dispose(self) -> None:
        """Stop listening to the sources."""
        for unsubscribe in self._source_unsubscribers:
            unsubscribe()
        self._source_unsubscribers.clear()
