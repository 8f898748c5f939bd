from __future__ import annotations

from dataclasses import dataclass, field
from ipaddress import ip_interface
from typing import Any

import docker
from docker.errors import DockerException
from requests.exceptions import RequestException

from .declarations import DEFAULT_PREFIX, has_routing_labels, parse_labels
from .errors import DiscoveryError, ResolutionError, ValidationError
from .events import log_event
from .models import IPAddress, RawDeclaration


@dataclass(frozen=True)
class ServiceLabels:
    name: str
    id: str
    labels: dict[str, str]


@dataclass
class Discovery:
    """Result of one listing: parsed declarations and per-service label errors."""

    declarations: list[RawDeclaration] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)


class SwarmDirectory:
    """Service directory backed by the Docker Swarm API.

    Services declare routing through ``<prefix>.*`` labels; their endpoints
    are the addresses of running tasks on the declared network.
    """

    def __init__(self, client: Any = None, label_prefix: str = DEFAULT_PREFIX, api_version: str = "1.24"):
        self._client = client
        self.label_prefix = label_prefix
        self.api_version = api_version

    @property
    def client(self) -> Any:
        if self._client is None:
            try:
                self._client = docker.from_env(version=self.api_version)
            except (DockerException, RequestException) as e:
                raise DiscoveryError(f"cannot create docker client: {e}") from e
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def list_services(self) -> list[ServiceLabels]:
        try:
            services = self.client.services.list()
        except (DockerException, RequestException) as e:
            raise DiscoveryError(f"cannot list docker services: {e}") from e

        out: list[ServiceLabels] = []
        for svc in services:
            spec = svc.attrs.get("Spec", {})
            out.append(ServiceLabels(name=spec.get("Name", ""), id=svc.id, labels=dict(spec.get("Labels") or {})))
        return out

    def list_declarations(self) -> Discovery:
        found = Discovery()
        for svc in self.list_services():
            if not has_routing_labels(svc.labels, self.label_prefix):
                log_event("DEBUG", "no routing labels; skipping", service_name=svc.name)
                continue
            try:
                found.declarations.append(parse_labels(svc.name, svc.id, svc.labels, self.label_prefix))
            except ValidationError as e:
                found.errors.append(e)
        return found

    def resolve_endpoints(self, service_id: str, network: str) -> list[IPAddress]:
        """Addresses of the service's running tasks on ``network``."""
        try:
            tasks = self.client.api.tasks(filters={"service": service_id, "desired-state": "running"})
        except (DockerException, RequestException) as e:
            raise ResolutionError(f"cannot list tasks for service id {service_id}: {e}", network=network) from e

        ips: list[IPAddress] = []
        for task in tasks:
            for attach in task.get("NetworksAttachments") or []:
                if attach.get("Network", {}).get("Spec", {}).get("Name") != network:
                    continue
                for addr in attach.get("Addresses") or []:
                    try:
                        ips.append(ip_interface(addr).ip)
                    except ValueError as e:
                        raise ResolutionError(
                            f"cannot parse address {addr!r} for service id {service_id}: {e}",
                            network=network,
                            value=addr,
                        ) from e
        return ips
