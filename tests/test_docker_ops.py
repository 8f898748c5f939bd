from ipaddress import ip_address
from types import SimpleNamespace

import pytest
from docker.errors import DockerException
from requests.exceptions import ConnectionError as RequestsConnectionError

from edgesync import docker_ops
from edgesync.docker_ops import SwarmDirectory
from edgesync.errors import DiscoveryError, ResolutionError

from conftest import labels


class _Service:
    def __init__(self, id, name, labels):
        self.id = id
        self.attrs = {"Spec": {"Name": name, "Labels": labels}}


def _client(services=(), tasks=(), fail=None):
    calls = []

    def list_services():
        if fail is not None:
            raise fail
        return list(services)

    def list_tasks(filters=None):
        calls.append(filters)
        if fail is not None:
            raise fail
        return list(tasks)

    client = SimpleNamespace(services=SimpleNamespace(list=list_services), api=SimpleNamespace(tasks=list_tasks))
    return client, calls


def _task(*attachments):
    return {
        "NetworksAttachments": [
            {"Network": {"Spec": {"Name": net}}, "Addresses": list(addrs)} for net, addrs in attachments
        ]
    }


def test_list_declarations_parses_labels_and_collects_errors():
    client, _ = _client(
        services=[
            _Service("svc-web", "web", labels()),
            _Service("svc-bad", "bad", labels(proto="icmp")),
            _Service("svc-db", "db", {"com.example.team": "data"}),
            _Service("svc-none", "none", None),
        ]
    )
    found = SwarmDirectory(client=client).list_declarations()

    assert [d.name for d in found.declarations] == ["web"]
    assert found.declarations[0].id == "svc-web"
    assert found.declarations[0].ports == [80]
    assert [e.context["service"] for e in found.errors] == ["bad"]


def test_list_services_failure_is_discovery_error():
    client, _ = _client(fail=DockerException("connection refused"))
    with pytest.raises(DiscoveryError, match="connection refused"):
        SwarmDirectory(client=client).list_services()


def test_resolve_endpoints_filters_by_network():
    client, calls = _client(
        tasks=[
            _task(("edge", ["10.0.1.5/24"]), ("ingress", ["10.255.0.7/16"])),
            _task(("edge", ["10.0.1.6/24"])),
            {"Status": {"State": "pending"}},
        ]
    )
    ips = SwarmDirectory(client=client).resolve_endpoints("svc-web", "edge")

    assert ips == [ip_address("10.0.1.5"), ip_address("10.0.1.6")]
    assert calls == [{"service": "svc-web", "desired-state": "running"}]


def test_resolve_endpoints_bad_address():
    client, _ = _client(tasks=[_task(("edge", ["not-an-ip"]))])
    with pytest.raises(ResolutionError) as exc:
        SwarmDirectory(client=client).resolve_endpoints("svc-web", "edge")
    assert exc.value.context["value"] == "not-an-ip"


def test_resolve_endpoints_docker_failure():
    client, _ = _client(fail=DockerException("no such service"))
    with pytest.raises(ResolutionError, match="svc-web"):
        SwarmDirectory(client=client).resolve_endpoints("svc-web", "edge")


def test_unreachable_daemon_is_discovery_error():
    # docker-py lets transport errors from requests through unwrapped
    client, _ = _client(fail=RequestsConnectionError("docker.sock: connection refused"))
    with pytest.raises(DiscoveryError, match="connection refused") as exc:
        SwarmDirectory(client=client).list_services()
    assert isinstance(exc.value.__cause__, RequestsConnectionError)


def test_unreachable_daemon_during_resolution():
    client, _ = _client(fail=RequestsConnectionError("docker.sock: connection refused"))
    with pytest.raises(ResolutionError, match="svc-web"):
        SwarmDirectory(client=client).resolve_endpoints("svc-web", "edge")


def test_client_creation_failure_is_discovery_error(monkeypatch):
    def from_env(version=None):
        raise RequestsConnectionError("docker.sock: connection refused")

    monkeypatch.setattr(docker_ops.docker, "from_env", from_env)
    with pytest.raises(DiscoveryError, match="cannot create docker client"):
        SwarmDirectory().list_services()
