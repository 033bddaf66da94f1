import pytest

from commonapi.address import Address
from commonapi.config import DEFAULT_BINDING
from commonapi.factory import Factory, Proxy, StubBase
from commonapi.runtime import ProxyManager, Runtime, normalize_library_name
from commonapi.types import DEFAULT_SEND_TIMEOUT_MS


class FakeFactory(Factory):
    def __init__(self, provides=True, accepts=True, holds=False):
        self.provides = provides
        self.accepts = accepts
        self.holds = holds
        self.init_calls = 0
        self.created = []
        self.registered = []
        self.unregistered = []

    def init(self):
        self.init_calls += 1

    def create_proxy(self, domain, interface, instance, connection):
        if not self.provides:
            return None
        proxy = Proxy(Address(domain, interface, instance))
        self.created.append(proxy)
        return proxy

    def register_stub(self, domain, interface, instance, stub, connection):
        if self.accepts:
            self.registered.append((domain, interface, instance, stub))
        return self.accepts

    def unregister_stub(self, domain, interface, instance):
        self.unregistered.append((domain, interface, instance))
        return self.holds


class FakeStub(StubBase):
    INTERFACE = "com.example.Foo"

    def has_element(self, element_id):
        return element_id == 1


class FakeProxyWrapper:
    INTERFACE = "com.example.Foo"

    def __init__(self, proxy):
        self.proxy = proxy


@pytest.fixture
def runtime(tmp_path):
    rt = Runtime()
    rt.configure(environ={"COMMONAPI_CONFIG": str(tmp_path / "missing.ini")}, cwd=tmp_path)
    return rt


@pytest.fixture
def library_base():
    yield
    Runtime.set_property("LibraryBase", "")


@pytest.fixture
def shared_runtime(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("COMMONAPI_CONFIG", str(tmp_path / "missing.ini"))
    monkeypatch.delenv("COMMONAPI_DEFAULT_BINDING", raising=False)
    monkeypatch.delenv("COMMONAPI_DEFAULT_FOLDER", raising=False)
    Runtime.reset()
    yield Runtime.get()
    Runtime.reset()


@pytest.mark.parametrize(
    "name",
    ["libfoo.so", "libfoo.so.1.2", "libfoo.so-3", "libfoo.so.10"],
)
def test_normalize_keeps_versioned_names(name):
    assert normalize_library_name(name) == name


@pytest.mark.parametrize("name", ["libfoo", "libfoo.so.1x", "libfoo.sox"])
def test_normalize_appends_suffix(name):
    assert normalize_library_name(name) == name + ".so"


def test_normalize_is_idempotent():
    once = normalize_library_name("libbar.so.2abc")
    assert normalize_library_name(once) == once


def test_properties_round_trip(library_base):
    assert Runtime.get_property("Unknown") == ""
    Runtime.set_property("LibraryBase", "Base")
    assert Runtime.get_property("LibraryBase") == "Base"


def test_defaults_without_configuration(runtime):
    assert runtime.default_binding == DEFAULT_BINDING
    assert runtime.default_call_timeout == DEFAULT_SEND_TIMEOUT_MS


def test_configuration_file_is_applied(tmp_path):
    config = tmp_path / "conf.ini"
    config.write_text(
        "[default]\nbinding=someip\ncallTimeout=1234\n"
        "[proxy]\nlocal:com.example.Foo:test=libcustom.so\n"
    )
    rt = Runtime()
    rt.configure(environ={"COMMONAPI_CONFIG": str(config)}, cwd=tmp_path)
    assert rt.default_binding == "someip"
    assert rt.default_call_timeout == 1234
    assert rt.get_library("local", "com.example.Foo", "test", True) == "libcustom.so"
    stub_library = rt.get_library("local", "com.example.Foo", "test", False)
    assert stub_library != "libcustom.so"
    assert stub_library.startswith("liblocal__")


def test_environment_overrides_binding(tmp_path):
    rt = Runtime()
    rt.configure(
        environ={
            "COMMONAPI_CONFIG": str(tmp_path / "missing.ini"),
            "COMMONAPI_DEFAULT_BINDING": "someip",
            "COMMONAPI_DEFAULT_FOLDER": str(tmp_path),
        },
        cwd=tmp_path,
    )
    assert rt.default_binding == "someip"
    assert rt.default_folder == str(tmp_path)


def test_malformed_configuration_keeps_defaults(tmp_path):
    config = tmp_path / "bad.ini"
    config.write_text("no section header here\n")
    rt = Runtime()
    rt.configure(environ={"COMMONAPI_CONFIG": str(config)}, cwd=tmp_path)
    assert rt.default_binding == DEFAULT_BINDING
    assert rt.default_call_timeout == DEFAULT_SEND_TIMEOUT_MS


def test_configure_runs_once(tmp_path, runtime):
    runtime.configure(environ={"COMMONAPI_DEFAULT_BINDING": "other"}, cwd=tmp_path)
    assert runtime.default_binding == DEFAULT_BINDING


def test_default_library_name(runtime):
    library = runtime.get_library("local", "com.example.Foo", "test", True)
    assert library == "liblocal__com_example_Foo__test"


def test_library_base_property(runtime, library_base):
    Runtime.set_property("LibraryBase", "Base")
    assert runtime.get_library("local", "com.example.Foo", "test", True) == (
        "libBase-" + DEFAULT_BINDING
    )


def test_register_factory_default_and_duplicates(runtime):
    default = FakeFactory()
    other = FakeFactory()
    assert runtime.register_factory(DEFAULT_BINDING, default) is True
    assert runtime.register_factory("someip", other) is True
    assert runtime.register_factory("someip", FakeFactory()) is False


def test_factories_initialised_once(runtime):
    default = FakeFactory()
    other = FakeFactory()
    runtime.register_factory(DEFAULT_BINDING, default)
    runtime.register_factory("someip", other)
    runtime.init_factories()
    runtime.init_factories()
    assert (default.init_calls, other.init_calls) == (1, 1)
    late = FakeFactory()
    runtime.register_factory("late", late)
    assert late.init_calls == 1


def test_create_proxy_from_registered_factory(runtime):
    factory = FakeFactory()
    runtime.register_factory("someip", factory)
    proxy = runtime.create_proxy("local", "com.example.Foo", "test")
    assert proxy is factory.created[0]
    assert str(proxy.address) == "local:com.example.Foo:test"


def test_create_proxy_falls_back_to_default_after_loading(tmp_path):
    requested = []

    def loader(name):
        requested.append(name)
        return False

    rt = Runtime(library_loader=loader)
    rt.configure(environ={"COMMONAPI_CONFIG": str(tmp_path / "missing.ini")}, cwd=tmp_path)
    rt.register_factory("someip", FakeFactory(provides=False))
    default = FakeFactory()
    rt.register_factory(DEFAULT_BINDING, default)
    proxy = rt.create_proxy("local", "com.example.Foo", "test")
    assert proxy is default.created[0]
    assert requested == [
        normalize_library_name(rt.get_library("local", "com.example.Foo", "test", True))
    ]


def test_create_proxy_without_any_factory(runtime):
    assert runtime.create_proxy("local", "com.example.Foo", "test") is None


def test_default_factory_not_used_before_loading_attempt(runtime):
    default = FakeFactory()
    runtime.register_factory(DEFAULT_BINDING, default)
    runtime.unregister_factory(DEFAULT_BINDING)
    assert runtime.create_proxy("local", "com.example.Foo", "test") is None
    assert default.created == []


def test_loaded_library_is_remembered(tmp_path):
    calls = []

    def loader(name):
        calls.append(name)
        return True

    rt = Runtime(library_loader=loader)
    assert rt.load_library("libfoo") is True
    assert rt.load_library("libfoo.so") is True
    assert calls == ["libfoo.so"]


def test_load_library_without_loader(runtime):
    assert runtime.load_library("libfoo") is False


def test_loader_error_reports_failure():
    def loader(name):
        raise OSError("cannot open")

    assert Runtime(library_loader=loader).load_library("libfoo") is False


def test_register_stub_none_is_rejected(runtime):
    runtime.register_factory(DEFAULT_BINDING, FakeFactory())
    assert runtime.register_stub("local", "com.example.Foo", "test", None) is False


def test_register_stub_and_service(runtime):
    factory = FakeFactory()
    runtime.register_factory("someip", factory)
    stub = FakeStub()
    assert runtime.register_service("local", "test", stub) is True
    assert factory.registered == [("local", "com.example.Foo", "test", stub)]


def test_register_stub_rejected_everywhere(runtime):
    runtime.register_factory("someip", FakeFactory(accepts=False))
    runtime.register_factory(DEFAULT_BINDING, FakeFactory(accepts=False))
    assert runtime.register_stub("local", "com.example.Foo", "test", FakeStub()) is False


def test_unregister_stub_stops_at_holder(runtime):
    holder = FakeFactory(holds=True)
    default = FakeFactory(holds=True)
    runtime.register_factory("someip", holder)
    runtime.register_factory(DEFAULT_BINDING, default)
    assert runtime.unregister_service("local", "com.example.Foo", "test") is True
    assert default.unregistered == []


def test_unregister_stub_uses_default(runtime):
    default = FakeFactory(holds=False)
    runtime.register_factory(DEFAULT_BINDING, default)
    assert runtime.unregister_stub("local", "com.example.Foo", "test") is False
    assert default.unregistered == [("local", "com.example.Foo", "test")]


def test_build_proxy_wraps_result(runtime):
    runtime.register_factory("someip", FakeFactory())
    wrapper = runtime.build_proxy(FakeProxyWrapper, "local", "test")
    assert isinstance(wrapper, FakeProxyWrapper)
    assert wrapper.proxy.address == Address("local", "com.example.Foo", "test")


def test_build_proxy_returns_none_without_factory(runtime):
    assert runtime.build_proxy(FakeProxyWrapper, "local", "test") is None


def test_shared_runtime_is_singleton(shared_runtime):
    assert Runtime.get() is shared_runtime
    Runtime.reset()
    assert Runtime.get() is not shared_runtime


def test_proxy_manager_uses_shared_runtime(shared_runtime):
    factory = FakeFactory()
    shared_runtime.register_factory("someip", factory)
    proxy = ProxyManager().create_proxy("local", "com.example.Foo", "test")
    assert proxy is factory.created[0]