from __future__ import annotations

from ipaddress import ip_address
from typing import Callable, Mapping, Sequence, TypeVar

from .errors import ValidationError
from .models import IPAddress, Protocol, RawDeclaration, ServiceDeclaration

T = TypeVar("T")

DEFAULT_PREFIX = "nginx"

# declaration field -> label suffix
LABELS: dict[str, str] = {
    "ports": "port",
    "listen_addresses": "listenIP",
    "listen_ports": "listenPort",
    "listen_protocols": "listenProto",
}


def _parse_int(raw: str) -> int:
    return int(raw)


def _parse_protocol(raw: str) -> Protocol:
    try:
        return Protocol(raw.lower())
    except ValueError:
        raise ValueError("protocol must be tcp or udp") from None


def _parse_address(raw: str) -> IPAddress:
    return ip_address(raw)


def _split(
    service: str,
    label: str,
    value: str,
    parse: Callable[[str], T],
) -> list[T]:
    out: list[T] = []
    for part in value.split(","):
        try:
            out.append(parse(part.strip()))
        except ValueError as e:
            raise ValidationError(
                f"cannot parse {label}={value!r}: {e}",
                service=service,
                label=label,
                value=value,
            ) from e
    return out


def has_routing_labels(labels: Mapping[str, str], prefix: str = DEFAULT_PREFIX) -> bool:
    return any(k.startswith(f"{prefix}.") for k in labels)


def parse_labels(
    name: str,
    id: str,
    labels: Mapping[str, str],
    prefix: str = DEFAULT_PREFIX,
) -> RawDeclaration:
    """Read a service's ``<prefix>.*`` labels into a RawDeclaration.

    Every list label is comma separated. Whitespace around elements is ignored;
    anything that does not parse raises ValidationError naming the label.
    """
    raw = RawDeclaration(name=name, id=id, network=labels.get(f"{prefix}.network", ""))
    parsers: dict[str, Callable[[str], object]] = {
        "ports": _parse_int,
        "listen_addresses": _parse_address,
        "listen_ports": _parse_int,
        "listen_protocols": _parse_protocol,
    }
    for attr, suffix in LABELS.items():
        label = f"{prefix}.{suffix}"
        if label in labels:
            setattr(raw, attr, _split(name, label, labels[label], parsers[attr]))
    return raw


def _broadcast(values: Sequence[T], length: int, label: str, service: str) -> tuple[T, ...]:
    n = len(values)
    if n == length:
        return tuple(values)
    if n == 1:
        return tuple(values) * length
    raise ValidationError(
        f"{label} length mismatch: expected {length} or 1, got {n}",
        service=service,
        label=label,
        expected=length,
        actual=n,
    )


def normalize(raw: RawDeclaration, prefix: str = DEFAULT_PREFIX) -> ServiceDeclaration:
    """Validate a declaration and broadcast its sequences to a common length.

    The common length L is the longest of the four sequences. A sequence of
    length 1 is repeated L times; one already of length L is kept; any other
    length is rejected. L == 0 is a valid declaration with no rules.
    """
    if not raw.name:
        raise ValidationError("name required", service=raw.id or None)
    if not raw.id:
        raise ValidationError("id required", service=raw.name)
    if not raw.network:
        raise ValidationError("network required", service=raw.name, label=f"{prefix}.network")

    length = max(len(getattr(raw, attr)) for attr in LABELS)
    values = {
        attr: _broadcast(getattr(raw, attr), length, f"{prefix}.{suffix}", raw.name)
        for attr, suffix in LABELS.items()
    }
    return ServiceDeclaration(name=raw.name, id=raw.id, network=raw.network, **values)


def declaration_from_labels(
    name: str,
    id: str,
    labels: Mapping[str, str],
    prefix: str = DEFAULT_PREFIX,
) -> ServiceDeclaration:
    return normalize(parse_labels(name, id, labels, prefix), prefix)
