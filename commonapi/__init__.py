"""Runtime for middleware-independent proxies, stubs and binding factories."""

__version__ = "3.2.4"
__all__ = ["address", "attribute", "config", "factory", "runtime", "types", "utils"]