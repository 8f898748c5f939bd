from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from ipaddress import IPv4Address, IPv6Address
from typing import Any, Sequence, Union

IPAddress = Union[IPv4Address, IPv6Address]


class Protocol(str, Enum):
    TCP = "tcp"
    UDP = "udp"

    def __str__(self) -> str:
        return self.value


@dataclass
class RawDeclaration:
    """A service's routing intent as read from its labels, before normalization."""

    name: str
    id: str
    network: str
    ports: Sequence[int] = field(default_factory=list)
    listen_addresses: Sequence[IPAddress] = field(default_factory=list)
    listen_ports: Sequence[int] = field(default_factory=list)
    listen_protocols: Sequence[Protocol] = field(default_factory=list)


@dataclass(frozen=True)
class ServiceDeclaration:
    """Normalized declaration: the four sequences share one length."""

    name: str
    id: str
    network: str
    ports: tuple[int, ...]
    listen_addresses: tuple[IPAddress, ...]
    listen_ports: tuple[int, ...]
    listen_protocols: tuple[Protocol, ...]

    def __len__(self) -> int:
        return len(self.ports)


@dataclass(frozen=True)
class Backend:
    address: IPAddress
    port: int

    @property
    def sort_key(self) -> str:
        return f"{self.address}:{self.port}"


@dataclass(frozen=True)
class RoutingRule:
    name: str
    listen_address: IPAddress
    listen_port: int
    listen_protocol: Protocol
    backends: tuple[Backend, ...] = ()

    @property
    def sort_key(self) -> str:
        return f"{self.name} {self.listen_address}:{self.listen_port}/{self.listen_protocol}"

    @property
    def upstream(self) -> str:
        # one upstream per listener; rules sharing a port differ by address
        address = str(self.listen_address).replace(".", "_").replace(":", "_")
        return f"{self.name}_{self.listen_protocol}_{address}_{self.listen_port}_backend"

    @property
    def is_udp(self) -> bool:
        return self.listen_protocol is Protocol.UDP


@dataclass(frozen=True)
class RoutingTable:
    rules: tuple[RoutingRule, ...] = ()

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)

    def as_dict(self) -> list[dict[str, Any]]:
        """JSON-friendly view, used for logging and the status API."""
        return [
            {
                "name": r.name,
                "listen_address": str(r.listen_address),
                "listen_port": r.listen_port,
                "listen_protocol": r.listen_protocol.value,
                "backends": [{"address": str(b.address), "port": b.port} for b in r.backends],
            }
            for r in self.rules
        ]
