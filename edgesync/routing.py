from __future__ import annotations

from typing import Callable, Iterable, Sequence

from .errors import EdgeSyncError, ResolutionError
from .events import log_event
from .models import Backend, IPAddress, RoutingRule, RoutingTable, ServiceDeclaration

Resolver = Callable[[str, str], Sequence[IPAddress]]


def rules_for(declaration: ServiceDeclaration, addresses: Iterable[IPAddress]) -> list[RoutingRule]:
    """One rule per declared listener, each with sorted backends."""
    addresses = list(addresses)
    rules: list[RoutingRule] = []
    for i in range(len(declaration)):
        backends = sorted(
            (Backend(address=a, port=declaration.ports[i]) for a in addresses),
            key=lambda b: b.sort_key,
        )
        rules.append(
            RoutingRule(
                name=declaration.name,
                listen_address=declaration.listen_addresses[i],
                listen_port=declaration.listen_ports[i],
                listen_protocol=declaration.listen_protocols[i],
                backends=tuple(backends),
            )
        )
    return rules


def _resolve(declaration: ServiceDeclaration, resolver: Resolver) -> list[IPAddress]:
    try:
        return list(resolver(declaration.id, declaration.network))
    except ResolutionError as e:
        e.context.setdefault("service", declaration.name)
        raise
    except EdgeSyncError as e:
        raise ResolutionError(
            f"cannot resolve endpoints for service {declaration.name}: {e}",
            service=declaration.name,
            network=declaration.network,
        ) from e


def build(
    declarations: Iterable[ServiceDeclaration],
    resolver: Resolver,
    isolate: bool = False,
) -> RoutingTable:
    """Combine declarations with their live endpoints into a sorted table.

    The resolver is called once per declaration. When ``isolate`` is false a
    single resolution failure aborts the whole build; otherwise the failing
    declaration is left out and reported.
    """
    rules: list[RoutingRule] = []
    for d in declarations:
        try:
            addresses = _resolve(d, resolver)
        except ResolutionError as e:
            if not isolate:
                raise
            log_event("WARN", f"Dropping routes: {e.message}", service_name=d.name, **e.context)
            continue
        rules.extend(rules_for(d, addresses))

    rules.sort(key=lambda r: r.sort_key)
    return RoutingTable(rules=tuple(rules))
