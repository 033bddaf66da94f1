"""Attribute interfaces for proxies and a cache for observable attributes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar

V = TypeVar("V")

_MISSING = object()


class _ChangeNotifier(Protocol):
    """What a changed event must offer: a way to subscribe listeners."""

    def subscribe(self, listener: Callable[[Any], Any]) -> Any:
        ...


class ReadonlyAttribute(ABC, Generic[V]):
    """An attribute whose value can be read, usually from a remote service."""

    @abstractmethod
    def get_value(self, info: Optional[Any] = None) -> V:
        """Return the current value; raise if the call fails."""

    @abstractmethod
    def get_value_async(
        self, callback: Callable[[V], Any], info: Optional[Any] = None
    ) -> Future[V]:
        """Start reading the value; ``callback`` receives it on success."""


class Attribute(ReadonlyAttribute[V]):
    """An attribute that can be read and written."""

    @abstractmethod
    def set_value(self, value: V, info: Optional[Any] = None) -> V:
        """Set the value and return the value actually set by the remote side."""

    @abstractmethod
    def set_value_async(
        self, value: V, callback: Callable[[V], Any], info: Optional[Any] = None
    ) -> Future[V]:
        """Start setting the value; ``callback`` receives the value set."""


class ObservableReadonlyAttribute(ReadonlyAttribute[V]):
    """A read-only attribute that announces remote changes."""

    @abstractmethod
    def changed_event(self) -> _ChangeNotifier:
        """Return the event fired whenever the remote value changes."""


class ObservableAttribute(Attribute[V]):
    """A writable attribute that announces remote changes."""

    @abstractmethod
    def changed_event(self) -> _ChangeNotifier:
        """Return the event fired whenever the remote value changes."""


class AttributeCacheExtension(Generic[V]):
    """Keeps the last value announced by an observable attribute.

    For attributes that are not observable nothing can be cached, and
    :meth:`get_cached_value` raises :class:`TypeError`.
    """

    def __init__(self, base_attribute: ReadonlyAttribute[V]) -> None:
        self.base_attribute = base_attribute
        self._cached: Any = _MISSING
        self._observable = isinstance(
            base_attribute, (ObservableAttribute, ObservableReadonlyAttribute)
        )
        if self._observable:
            base_attribute.changed_event().subscribe(self._on_value_update)

    def get_cached_value(self, default: Optional[V] = None) -> Optional[V]:
        """Return the cached value, or ``default`` if none has arrived yet."""
        if not self._observable:
            raise TypeError(
                f"{type(self.base_attribute).__name__} is not observable; "
                "its value cannot be cached"
            )
        if self._cached is _MISSING:
            return default
        return self._cached

    def _on_value_update(self, value: V) -> None:
        if self._cached is not _MISSING and self._cached == value:
            return
        self._cached = value

    def _value_retrieved(self, future: Future[V]) -> None:
        """Done-callback for an asynchronous read: cache a successful result."""
        if future.cancelled() or future.exception() is not None:
            return
        self._on_value_update(future.result())