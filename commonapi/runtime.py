"""Process-wide runtime that routes proxy and stub requests to bindings."""

from __future__ import annotations

import logging
import os
import string
import threading
from collections.abc import Mapping
from typing import Any, Callable, ClassVar, Optional

from commonapi.config import (
    DEFAULT_BINDING,
    DEFAULT_CONFIG_PATH,
    DEFAULT_FOLDER,
    LoggingSettings,
    PathLike,
    find_configuration,
    read_configuration,
)
from commonapi.factory import Factory, Proxy, StubBase
from commonapi.types import DEFAULT_SEND_TIMEOUT_MS

DEFAULT_CONNECTION_ID = ""

LibraryLoader = Callable[[str], bool]

_log = logging.getLogger(__name__)

_VERSION_CHARS = frozenset(".-" + string.digits)


def normalize_library_name(library: str) -> str:
    """Make sure a shared library name ends in ``.so`` or a version suffix.

    ``libfoo`` becomes ``libfoo.so``; ``libfoo.so`` and ``libfoo.so.1.2``
    stay as they are; anything after ``.so`` that is not a version gets
    another ``.so`` appended.
    """
    so_start = library.rfind(".so")
    if so_start == -1:
        return library + ".so"
    suffix = library[so_start + 3:]
    if suffix and not all(char in _VERSION_CHARS for char in suffix):
        return library + ".so"
    return library


class Runtime:
    """Holds the binding factories and the configured library mappings.

    ``library_loader`` is called with a normalised library name and returns
    whether loading it succeeded; loading a binding library is expected to
    register its factories. Without a loader no library can be loaded and
    the default factory is used as the fallback.
    """

    _properties: ClassVar[dict[str, str]] = {}
    _instance: ClassVar[Optional["Runtime"]] = None
    _instance_lock: ClassVar[threading.Lock] = threading.Lock()

    @staticmethod
    def get_property(name: str) -> str:
        """Return a runtime property, or ``""`` if it is not set."""
        return Runtime._properties.get(name, "")

    @staticmethod
    def set_property(name: str, value: str) -> None:
        """Set a runtime property."""
        Runtime._properties[name] = value

    @classmethod
    def get(cls) -> Runtime:
        """Return the shared runtime, creating and configuring it on first use."""
        with cls._instance_lock:
            if cls._instance is None:
                runtime = cls()
                runtime.configure()
                cls._instance = runtime
            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the shared runtime; the next :meth:`get` creates a new one."""
        with cls._instance_lock:
            cls._instance = None

    def __init__(self, library_loader: Optional[LibraryLoader] = None) -> None:
        self._library_loader = library_loader
        self.used_config: Optional[str] = None
        self.logging_settings = LoggingSettings()
        self._default_binding = DEFAULT_BINDING
        self._default_folder = DEFAULT_FOLDER
        self._default_call_timeout = DEFAULT_SEND_TIMEOUT_MS
        self._factories: dict[str, Factory] = {}
        self._default_factory: Optional[Factory] = None
        self._libraries: dict[tuple[str, bool], str] = {}
        self._loaded_libraries: set[str] = set()
        self._mutex = threading.Lock()
        self._factories_lock = threading.RLock()
        self._load_lock = threading.Lock()
        self._is_configured = False
        self._is_initialized = False

    def configure(
        self,
        environ: Optional[Mapping[str, str]] = None,
        cwd: Optional[PathLike] = None,
    ) -> None:
        """Read the configuration file and environment, once.

        ``COMMONAPI_CONFIG`` names the fallback configuration file;
        ``COMMONAPI_DEFAULT_BINDING`` and ``COMMONAPI_DEFAULT_FOLDER``
        override the configured binding and library folder.
        """
        env = os.environ if environ is None else environ
        with self._mutex:
            if self._is_configured:
                return
            default_config = env.get("COMMONAPI_CONFIG", DEFAULT_CONFIG_PATH)
            self._read_configuration(default_config, cwd)

            binding = env.get("COMMONAPI_DEFAULT_BINDING")
            if binding is not None:
                self._default_binding = binding
            folder = env.get("COMMONAPI_DEFAULT_FOLDER")
            if folder is not None:
                self._default_folder = folder
            self._is_configured = True

    def _read_configuration(self, default_config: PathLike, cwd: Optional[PathLike]) -> bool:
        path = find_configuration(default_config, cwd)
        self.used_config = str(path) if path is not None else str(default_config)
        try:
            config = read_configuration(path)
        except (OSError, ValueError) as error:
            _log.warning("Cannot read configuration %s: %s", self.used_config, error)
            return False

        self.logging_settings = config.logging
        self._default_binding = config.binding
        self._default_folder = config.folder
        self._default_call_timeout = config.call_timeout
        for address, library in config.proxy_libraries.items():
            _log.debug("Adding proxy mapping: %s --> %s", address, library)
            self._libraries[(address, True)] = library
        for address, library in config.stub_libraries.items():
            _log.debug("Adding stub mapping: %s --> %s", address, library)
            self._libraries[(address, False)] = library
        return True

    def register_factory(self, binding: str, factory: Factory) -> bool:
        """Register the factory of a binding; return whether it was taken."""
        with self._factories_lock:
            registered = False
            if binding == self._default_binding:
                self._default_factory = factory
                registered = True
            elif binding not in self._factories:
                self._factories[binding] = factory
                registered = True
            if registered and self._is_initialized:
                factory.init()
            return registered

    def unregister_factory(self, binding: str) -> bool:
        """Remove the factory of a binding."""
        with self._factories_lock:
            if binding == self._default_binding:
                self._default_factory = None
            else:
                self._factories.pop(binding, None)
            return True

    def init_factories(self) -> None:
        """Initialise every registered factory, once."""
        with self._factories_lock:
            if self._is_initialized:
                return
            _log.info("Loading configuration file '%s'", self.used_config)
            _log.info("Using default binding '%s'", self._default_binding)
            _log.info("Using default shared library folder '%s'", self._default_folder)
            if self._default_factory is not None:
                self._default_factory.init()
            for factory in self._factories.values():
                factory.init()
            self._is_initialized = True

    @property
    def default_binding(self) -> str:
        """Name of the binding whose factory is the fallback."""
        return self._default_binding

    @property
    def default_folder(self) -> str:
        """Folder where binding libraries are expected."""
        return self._default_folder

    @property
    def default_call_timeout(self) -> int:
        """Default call timeout in milliseconds."""
        return self._default_call_timeout

    def build_proxy(
        self,
        proxy_class: Callable[[Proxy], Any],
        domain: str,
        instance: str,
        connection: Any = DEFAULT_CONNECTION_ID,
    ) -> Any:
        """Create a proxy and wrap it in ``proxy_class``.

        ``proxy_class`` names its interface in the ``INTERFACE`` attribute.
        Returns ``None`` if no factory could create the proxy.
        """
        interface = getattr(proxy_class, "INTERFACE")
        proxy = self.create_proxy(domain, interface, instance, connection)
        if proxy is None:
            return None
        return proxy_class(proxy)

    def register_service(
        self,
        domain: str,
        instance: str,
        service: StubBase,
        connection: Any = DEFAULT_CONNECTION_ID,
    ) -> bool:
        """Register a stub under the interface named by its ``INTERFACE``."""
        interface = getattr(service, "INTERFACE")
        return self.register_stub(domain, interface, instance, service, connection)

    def unregister_service(self, domain: str, interface: str, instance: str) -> bool:
        """Withdraw a registered service instance."""
        return self.unregister_stub(domain, interface, instance)

    def create_proxy(
        self,
        domain: str,
        interface: str,
        instance: str,
        connection: Any = DEFAULT_CONNECTION_ID,
    ) -> Optional[Proxy]:
        """Return a proxy from the first factory able to create one."""
        if not self._is_initialized:
            self.init_factories()

        proxy = self._create_proxy_helper(domain, interface, instance, connection, False)
        if proxy is None:
            with self._load_lock:
                library = self.get_library(domain, interface, instance, True)
                loaded = self.load_library(library)
                if loaded or self._default_factory is not None:
                    if not loaded:
                        _log.debug("Loading interface library failed, using default factory now.")
                    proxy = self._create_proxy_helper(
                        domain, interface, instance, connection, True
                    )
        return proxy

    def register_stub(
        self,
        domain: str,
        interface: str,
        instance: str,
        stub: Optional[StubBase],
        connection: Any = DEFAULT_CONNECTION_ID,
    ) -> bool:
        """Register a stub with the first factory that accepts it."""
        if stub is None:
            return False
        if not self._is_initialized:
            self.init_factories()

        registered = self._register_stub_helper(
            domain, interface, instance, stub, connection, False
        )
        if not registered:
            library = self.get_library(domain, interface, instance, False)
            with self._load_lock:
                loaded = self.load_library(library)
                if loaded or self._default_factory is not None:
                    if not loaded:
                        _log.debug("Loading interface library failed, using default factory now.")
                    registered = self._register_stub_helper(
                        domain, interface, instance, stub, connection, True
                    )
        return registered

    def unregister_stub(self, domain: str, interface: str, instance: str) -> bool:
        """Withdraw a stub from whichever factory holds it."""
        for factory in list(self._factories.values()):
            if factory.unregister_stub(domain, interface, instance):
                return True
        if self._default_factory is not None:
            return self._default_factory.unregister_stub(domain, interface, instance)
        return False

    def get_library(self, domain: str, interface: str, instance: str, is_proxy: bool) -> str:
        """Return the library that provides the proxy or stub of an instance."""
        address = f"{domain}:{interface}:{instance}"
        _log.debug("Loading library for %s%s", address, " proxy." if is_proxy else " stub.")

        configured = self._libraries.get((address, is_proxy))
        if configured is not None:
            return configured

        base = self.get_property("LibraryBase")
        if base:
            return f"lib{base}-{self._default_binding}"
        return f"lib{domain}__{interface}__{instance}".replace(".", "_")

    def load_library(self, library: str) -> bool:
        """Load a binding library once; return whether it is loaded."""
        name = normalize_library_name(library)
        if name in self._loaded_libraries:
            return True
        if self._library_loader is None:
            _log.debug('Loading interface library "%s" failed (no loader)', name)
            return False
        try:
            loaded = bool(self._library_loader(name))
        except OSError as error:
            _log.debug('Loading interface library "%s" failed (%s)', name, error)
            return False
        if loaded:
            self._loaded_libraries.add(name)
            _log.debug('Loading interface library "%s" succeeded.', name)
        else:
            _log.debug('Loading interface library "%s" failed.', name)
        return loaded

    def _create_proxy_helper(
        self, domain: str, interface: str, instance: str, connection: Any, use_default: bool
    ) -> Optional[Proxy]:
        with self._factories_lock:
            for factory in self._factories.values():
                proxy = factory.create_proxy(domain, interface, instance, connection)
                if proxy is not None:
                    return proxy
            if use_default and self._default_factory is not None:
                return self._default_factory.create_proxy(domain, interface, instance, connection)
            return None

    def _register_stub_helper(
        self,
        domain: str,
        interface: str,
        instance: str,
        stub: StubBase,
        connection: Any,
        use_default: bool,
    ) -> bool:
        with self._factories_lock:
            for factory in self._factories.values():
                if factory.register_stub(domain, interface, instance, stub, connection):
                    return True
            if use_default and self._default_factory is not None:
                return self._default_factory.register_stub(
                    domain, interface, instance, stub, connection
                )
            return False


class ProxyManager:
    """Creates proxies for managed instances through the shared runtime."""

    def create_proxy(
        self,
        domain: str,
        interface: str,
        instance: str,
        connection: Any = DEFAULT_CONNECTION_ID,
    ) -> Optional[Proxy]:
        return Runtime.get().create_proxy(domain, interface, instance, connection)