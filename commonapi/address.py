"""Service addresses of the form ``domain:interface:instance``."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(order=True)
class Address:
    """Identifies a service instance by domain, interface and instance."""

    domain: str = ""
    interface: str = ""
    instance: str = ""

    @classmethod
    def parse(cls, address: str) -> Address:
        """Build an address from its ``domain:interface:instance`` form."""
        parts = address.split(":", 2)
        if len(parts) != 3:
            raise ValueError(
                f"invalid address {address!r}: expected domain:interface:instance"
            )
        return cls(*parts)

    def __str__(self) -> str:
        return f"{self.domain}:{self.interface}:{self.instance}"