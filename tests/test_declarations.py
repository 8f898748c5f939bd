from ipaddress import ip_address

import pytest

from edgesync.declarations import declaration_from_labels, normalize, parse_labels
from edgesync.errors import ValidationError
from edgesync.models import Protocol, RawDeclaration

from conftest import labels


def _raw(**kw):
    base = dict(
        name="web",
        id="svc-web",
        network="edge",
        ports=[80],
        listen_addresses=[ip_address("0.0.0.0")],
        listen_ports=[8080],
        listen_protocols=[Protocol.TCP],
    )
    base.update(kw)
    return RawDeclaration(**base)


@pytest.mark.parametrize(
    "field,values",
    [
        ("ports", [80, 81, 82]),
        ("listen_ports", [8080, 8081, 8082]),
        ("listen_protocols", [Protocol.TCP, Protocol.UDP, Protocol.TCP]),
        ("listen_addresses", [ip_address("10.1.0.1"), ip_address("10.1.0.2"), ip_address("10.1.0.3")]),
    ],
)
def test_singletons_broadcast_to_longest(field, values):
    d = normalize(_raw(**{field: values}))

    assert len(d) == 3
    assert getattr(d, field) == tuple(values)
    for other in ("ports", "listen_addresses", "listen_ports", "listen_protocols"):
        seq = getattr(d, other)
        assert len(seq) == 3
        if other != field:
            assert len(set(seq)) == 1


def test_broadcast_keeps_singleton_value():
    d = normalize(_raw(ports=[9000], listen_ports=[1, 2, 3, 4]))
    assert d.ports == (9000, 9000, 9000, 9000)
    assert d.listen_addresses == (ip_address("0.0.0.0"),) * 4


def test_length_mismatch_names_attribute_and_lengths():
    with pytest.raises(ValidationError) as exc:
        normalize(_raw(ports=[80, 81, 82], listen_ports=[8080, 8081]))

    assert str(exc.value) == "nginx.listenPort length mismatch: expected 3 or 1, got 2"
    assert exc.value.context["label"] == "nginx.listenPort"
    assert exc.value.context["expected"] == 3
    assert exc.value.context["actual"] == 2
    assert exc.value.context["service"] == "web"


def test_empty_sequence_is_rejected_when_others_are_set():
    with pytest.raises(ValidationError, match=r"nginx.port length mismatch: expected 1 or 1, got 0"):
        normalize(_raw(ports=[]))


def test_zero_length_declaration_is_valid():
    d = normalize(_raw(ports=[], listen_addresses=[], listen_ports=[], listen_protocols=[]))
    assert len(d) == 0


@pytest.mark.parametrize(
    "field,message",
    [("name", "name required"), ("id", "id required"), ("network", "network required")],
)
def test_required_fields(field, message):
    with pytest.raises(ValidationError) as exc:
        normalize(_raw(**{field: ""}))
    assert str(exc.value) == message


def test_normalize_does_not_mutate_input():
    raw = _raw(ports=[80], listen_ports=[1, 2])
    normalize(raw)
    assert raw.ports == [80]


def test_parse_labels_trims_and_lowercases():
    raw = parse_labels(
        "dns",
        "svc-dns",
        labels(port=" 53 , 53", listen_ip="0.0.0.0, ::", listen_port="53,53", proto="UDP, tcp"),
    )
    assert raw.network == "edge"
    assert raw.ports == [53, 53]
    assert raw.listen_addresses == [ip_address("0.0.0.0"), ip_address("::")]
    assert raw.listen_protocols == [Protocol.UDP, Protocol.TCP]


def test_parse_labels_missing_labels_are_empty():
    raw = parse_labels("web", "svc-web", {"nginx.network": "edge"})
    assert raw.ports == [] and raw.listen_protocols == []


@pytest.mark.parametrize(
    "kw,label",
    [
        ({"port": "80,http"}, "nginx.port"),
        ({"listen_port": ""}, "nginx.listenPort"),
        ({"listen_ip": "0.0.0.0,999.1.1.1"}, "nginx.listenIP"),
        ({"proto": "sctp"}, "nginx.listenProto"),
    ],
)
def test_parse_labels_reports_offending_value(kw, label):
    bad = labels(**kw)
    with pytest.raises(ValidationError) as exc:
        parse_labels("web", "svc-web", bad)

    assert exc.value.context == {"service": "web", "label": label, "value": bad[label]}
    assert label in str(exc.value)


def test_custom_prefix():
    d = declaration_from_labels(
        "web",
        "svc-web",
        {"edge.network": "edge", "edge.port": "80", "edge.listenIP": "0.0.0.0", "edge.listenPort": "80,81", "edge.listenProto": "tcp"},
        prefix="edge",
    )
    assert d.listen_ports == (80, 81)
    assert d.ports == (80, 80)
