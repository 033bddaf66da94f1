"""Basic value types shared by proxies, stubs and serialisation."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import total_ordering
from typing import Any, Generic, Optional, TypeVar

DEFAULT_SEND_TIMEOUT_MS = 5000
"""Default time, in milliseconds, to wait for a reply to a call."""

_UINT32_MAX = 2**32 - 1

T = TypeVar("T")
D = TypeVar("D")


@dataclass(frozen=True, order=True)
class Version:
    """Interface version made of a major and a minor number."""

    major: int = 0
    minor: int = 0

    def __post_init__(self) -> None:
        for name in ("major", "minor"):
            number = getattr(self, name)
            if not 0 <= number <= _UINT32_MAX:
                raise ValueError(f"{name} version {number} is outside 0..{_UINT32_MAX}")


@total_ordering
class RangedInteger:
    """An integer meant to lie within ``[minimum, maximum]``.

    The bounds are not enforced on assignment; :meth:`validate` reports
    whether the current value lies within them.
    """

    def __init__(self, value: Optional[int], minimum: int, maximum: int) -> None:
        self.minimum = minimum
        self.maximum = maximum
        self.value = minimum if value is None else value

    def validate(self) -> bool:
        return self.minimum <= self.value <= self.maximum

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    @staticmethod
    def _raw(other: Any) -> Any:
        if isinstance(other, RangedInteger):
            return other.value
        if isinstance(other, int) and not isinstance(other, bool):
            return other
        return NotImplemented

    def __eq__(self, other: object) -> bool:
        raw = self._raw(other)
        if raw is NotImplemented:
            return NotImplemented
        return self.value == raw

    def __lt__(self, other: Any) -> bool:
        raw = self._raw(other)
        if raw is NotImplemented:
            return NotImplemented
        return self.value < raw

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return f"RangedInteger({self.value}, {self.minimum}, {self.maximum})"


@total_ordering
class Enumeration(ABC):
    """Base of generated enumerations wrapping a raw value.

    Subclasses decide in :meth:`validate` which raw values are legal.
    """

    def __init__(self, value: Any) -> None:
        if isinstance(value, Enumeration):
            value = value.value
        self.value = value

    @abstractmethod
    def validate(self) -> bool:
        """Return whether the raw value is one of the legal literals."""

    def _raw(self, other: Any) -> Any:
        if isinstance(other, Enumeration):
            return other.value
        if isinstance(other, type(self.value)):
            return other
        return NotImplemented

    def __eq__(self, other: object) -> bool:
        raw = self._raw(other)
        if raw is NotImplemented:
            return NotImplemented
        return self.value == raw

    def __lt__(self, other: Any) -> bool:
        raw = self._raw(other)
        if raw is NotImplemented:
            return NotImplemented
        return self.value < raw

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"


@dataclass
class Deployable(Generic[T, D]):
    """A value paired with the deployment settings used to serialise it."""

    value: Optional[T] = None
    depl: Optional[D] = None


class SelectiveBroadcastSubscriptionEvent(enum.Enum):
    """Change in a client's subscription to a selective broadcast."""

    SUBSCRIBED = 0
    UNSUBSCRIBED = 1