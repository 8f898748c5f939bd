import threading
from ipaddress import ip_address

import pytest

from edgesync.docker_ops import ServiceLabels, SwarmDirectory
from edgesync.events import clear_events
from edgesync.nginx import ProcessState


def labels(network="edge", port="80", listen_ip="0.0.0.0", listen_port="8080", proto="tcp"):
    out = {"nginx.network": network}
    for key, value in (
        ("nginx.port", port),
        ("nginx.listenIP", listen_ip),
        ("nginx.listenPort", listen_port),
        ("nginx.listenProto", proto),
    ):
        if value is not None:
            out[key] = value
    return out


class FakeDirectory(SwarmDirectory):
    """SwarmDirectory with canned services and endpoints instead of a docker client."""

    def __init__(self, services=(), endpoints=None):
        super().__init__(client=object())
        self.services = list(services)  # [(name, id, labels)]
        self.endpoints = dict(endpoints or {})  # id -> [ip str] | Exception
        self.fail = None
        self.resolve_calls = []

    def list_services(self):
        if self.fail is not None:
            raise self.fail
        return [ServiceLabels(name=n, id=i, labels=dict(l)) for n, i, l in self.services]

    def resolve_endpoints(self, service_id, network):
        self.resolve_calls.append((service_id, network))
        value = self.endpoints.get(service_id, [])
        if isinstance(value, Exception):
            raise value
        return [ip_address(a) for a in value]


class FakeSupervisor:
    """Stands in for NginxProcess; records writes and reloads."""

    def __init__(self):
        self.state = ProcessState.NOT_STARTED
        self.pid = None
        self.writes = []
        self.reloads = 0
        self.stopped = False
        self.fail_locate = None
        self.fail_write = None
        self.fail_reload = None
        self.exit_code = None
        self._exited = threading.Event()

    def locate(self):
        if self.fail_locate is not None:
            raise self.fail_locate
        return "/usr/sbin/nginx"

    def write_config(self, data):
        if self.fail_write is not None:
            raise self.fail_write
        self.writes.append(data)

    def start(self):
        self.state = ProcessState.RUNNING
        self.pid = 4242

    def is_running(self):
        return self.state is ProcessState.RUNNING

    def reload(self):
        if self.fail_reload is not None:
            raise self.fail_reload
        self.reloads += 1

    def wait(self):
        self._exited.wait()
        self.state = ProcessState.EXITED
        return self.exit_code

    def exit(self, code):
        self.exit_code = code
        self._exited.set()

    def stop(self):
        self.stopped = True
        if self.is_running():
            self.exit(0)


@pytest.fixture(autouse=True)
def _clean_events():
    clear_events()
    yield
    clear_events()


@pytest.fixture
def directory():
    return FakeDirectory(
        services=[("web", "svc-web", labels())],
        endpoints={"svc-web": ["10.0.0.1"]},
    )


@pytest.fixture
def supervisor():
    return FakeSupervisor()
