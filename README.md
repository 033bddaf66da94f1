# commonapi

A small runtime that keeps application code apart from the IPC mechanism
underneath it. Applications ask the runtime for proxies and register
service stubs. The runtime passes these requests on to *factories* that
are registered for named bindings. It can also call a library loader you
supply when no registered factory can serve a request.

## Installation

```
pip install commonapi
```

## Modules

- `commonapi.runtime`
  - `Runtime` is the runtime.
    - `Runtime.get()` returns the shared instance. It is created and
      configured on first use, and `Runtime.reset()` drops it.
    - `Runtime(library_loader=...)` builds a separate runtime. Call its
      `configure(environ=None, cwd=None)` yourself.
    - Configuration is read once. A `commonapi.ini` in the working
      directory is used first. Failing that, the runtime uses the file
      named by `COMMONAPI_CONFIG`, which defaults to `/etc/commonapi.ini`.
    - `COMMONAPI_DEFAULT_BINDING` and `COMMONAPI_DEFAULT_FOLDER` override
      the binding and library folder that the configuration gives.
    - `register_factory` and `unregister_factory` manage factories. A
      factory registered under the default binding becomes the fallback
      factory. A second factory for a binding that already has one is
      refused.
    - `create_proxy`, `register_stub` and `unregister_stub` route requests
      to the factories. `build_proxy` and `register_service` take the
      interface name from an `INTERFACE` attribute. `unregister_service`
      withdraws a service.
    - `get_library` and `load_library` work out and load binding
      libraries.
    - `default_binding`, `default_folder` and `default_call_timeout`
      (milliseconds, default 5000) report the configured defaults.
    - `Runtime.get_property` and `Runtime.set_property` hold process-wide
      string properties, for example `LibraryBase`.
  - `normalize_library_name` appends `.so` to a library name unless the
    name already ends in `.so` or in a `.so` version suffix such as
    `.so.1.2`.
  - `ProxyManager.create_proxy` creates proxies through `Runtime.get()`.
- `commonapi.factory` holds the base classes:
  - `Factory` is the interface a binding implements: `init`,
    `create_proxy`, `register_stub` and `unregister_stub`.
  - `Proxy` has an `address` and a `completion_future()`. That future
    completes on `close()` or when a `with` block ends.
  - `StubBase` declares `has_element`.
  - `Stub` keeps a weak reference to its `StubAdapter`, set through
    `init_stub_adapter` and read through `stub_adapter()`.
- `commonapi.attribute` holds the attribute interfaces
  (`ReadonlyAttribute`, `Attribute`, `ObservableReadonlyAttribute`,
  `ObservableAttribute`) and `AttributeCacheExtension`.
  - `AttributeCacheExtension` subscribes to the `changed_event()` of an
    observable attribute and keeps the last value.
  - `get_cached_value(default)` returns that value, or `default` if no
    value has arrived yet.
  - For an attribute that is not observable it raises `TypeError`.
- `commonapi.address.Address` is an ordered dataclass of `domain`,
  `interface` and `instance`.
  - `Address.parse("domain:interface:instance")` builds one and raises
    `ValueError` for other forms.
  - `str()` gives the colon-separated form back.
- `commonapi.types` provides:
  - `Version`: frozen, with major and minor limited to 0..2³²−1.
  - `RangedInteger`: `validate()` checks the bounds.
  - `Enumeration`: an abstract base wrapping a raw value.
  - `Deployable`: a value with its deployment settings.
  - `SelectiveBroadcastSubscriptionEvent`.
  - `DEFAULT_SEND_TIMEOUT_MS`.
- `commonapi.config` reads the configuration.
  - `find_configuration` picks the file.
  - `read_configuration` returns a `RuntimeConfig` with its
    `LoggingSettings`. It raises `OSError` for an unreadable file and
    `ValueError` for a malformed one.
- `commonapi.utils` has `split(text, delim)`, which drops one trailing
  empty field, and `trim(text)`.

## Example

```python
from commonapi.address import Address
from commonapi.factory import Factory, Proxy
from commonapi.runtime import Runtime


class LocalFactory(Factory):
    def init(self):
        pass

    def create_proxy(self, domain, interface, instance, connection):
        return Proxy(Address(domain, interface, instance))

    def register_stub(self, domain, interface, instance, stub, connection):
        return False

    def unregister_stub(self, domain, interface, instance):
        return False


runtime = Runtime.get()
runtime.register_factory("local", LocalFactory())
with runtime.create_proxy("local", "my.pkg.Service", "main") as proxy:
    print(proxy.address)  # local:my.pkg.Service:main
```

## Library lookup

When no factory can serve a request, the runtime asks `get_library` which
library to load:

1. It uses a mapping from the `[proxy]` or `[stub]` section of the
   configuration, keyed by `domain:interface:instance`.
2. Otherwise, if the `LibraryBase` property is set, it uses
   `lib<LibraryBase>-<default binding>`.
3. Otherwise it uses `lib<domain>__<interface>__<instance>` with dots
   replaced by underscores.

The name is normalised with `normalize_library_name` and handed to the
runtime's `library_loader`. A library is loaded only once. If no library
loads but a default factory is registered, the default factory is tried.

## Configuration file

```ini
[logging]
console=true
level=info

[default]
binding=dbus
folder=/usr/local/lib/commonapi
callTimeout=5000

[proxy]
local:my.pkg.Service:main=libMyServiceProxy.so
```

## What this package does not do

- It ships no binding. There is no transport, no factory implementation,
  and no serialisation of values onto a wire. Those come from factories
  that you register.
- It does not open shared libraries itself. Without a `library_loader`,
  and the runtime from `Runtime.get()` has none, every library load fails
  and only registered factories are used.
- The `[logging]` settings are read into `Runtime.logging_settings` but
  are not applied. Messages go to the standard `logging` module under the
  `commonapi.runtime` logger.
- There is no command-line program.