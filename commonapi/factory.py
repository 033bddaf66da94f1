"""Factories, proxies and stubs that middleware bindings provide."""

from __future__ import annotations

import weakref
from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import Any, Callable, Optional

from commonapi.address import Address


class Proxy:
    """Client-side handle on a remote service instance."""

    def __init__(self, address: Optional[Address] = None) -> None:
        self.address = address if address is not None else Address()
        self._completed: Future[None] = Future()

    def completion_future(self) -> Future[None]:
        """Return a future that completes once the proxy is closed."""
        return self._completed

    def close(self) -> None:
        """Release the proxy and complete its completion future."""
        if not self._completed.done():
            self._completed.set_result(None)

    def __enter__(self) -> Proxy:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()


class StubBase(ABC):
    """Server-side implementation of a service interface."""

    @abstractmethod
    def has_element(self, element_id: int) -> bool:
        """Return whether the interface has the element with this id."""


class StubAdapter:
    """Binding-side object connecting a stub to the transport."""

    def __init__(self, address: Optional[Address] = None) -> None:
        self.address = address if address is not None else Address()


class Stub(StubBase):
    """A stub that knows the adapter serving it, without keeping it alive."""

    _adapter_ref: Optional[Callable[[], Optional[StubAdapter]]] = None

    def init_stub_adapter(self, adapter: StubAdapter) -> Any:
        """Attach ``adapter`` and return the stub's remote event handler."""
        if not isinstance(adapter, StubAdapter):
            raise TypeError(f"invalid stub adapter: {type(adapter).__name__}")
        self._adapter_ref = weakref.ref(adapter)
        return self._make_remote_event_handler()

    def stub_adapter(self) -> Optional[StubAdapter]:
        """Return the attached adapter, or ``None`` if it is gone."""
        if self._adapter_ref is None:
            return None
        return self._adapter_ref()

    def _make_remote_event_handler(self) -> Any:
        return None


class Factory(ABC):
    """Creates proxies and registers stubs for one middleware binding.

    ``connection`` is either a connection id or a main loop context.
    """

    @abstractmethod
    def init(self) -> None:
        """Prepare the factory for use."""

    @abstractmethod
    def create_proxy(
        self, domain: str, interface: str, instance: str, connection: Any
    ) -> Optional[Proxy]:
        """Return a proxy for the instance, or ``None`` if not supported."""

    @abstractmethod
    def register_stub(
        self, domain: str, interface: str, instance: str, stub: StubBase, connection: Any
    ) -> bool:
        """Offer ``stub`` as the instance; return whether it was registered."""

    @abstractmethod
    def unregister_stub(self, domain: str, interface: str, instance: str) -> bool:
        """Withdraw the instance; return whether it was registered here."""