from __future__ import annotations

import hashlib
from dataclasses import dataclass
from ipaddress import IPv6Address
from pathlib import Path

from jinja2 import BaseLoader, ChoiceLoader, Environment, FileSystemLoader, PackageLoader, StrictUndefined, TemplateError

from .errors import RenderError
from .models import IPAddress, RoutingTable

TEMPLATE_NAME = "nginx.conf.j2"


def hostport(address: IPAddress, port: int) -> str:
    if isinstance(address, IPv6Address):
        return f"[{address}]:{port}"
    return f"{address}:{port}"


def build_template_environment(template_dir: str | Path | None = None) -> Environment:
    """Jinja2 environment with an optional override directory before the packaged template."""
    loaders: list[BaseLoader] = []
    if template_dir is not None:
        loaders.append(FileSystemLoader(str(template_dir)))
    loaders.append(PackageLoader("edgesync", "templates"))

    env = Environment(
        loader=ChoiceLoader(loaders),
        keep_trailing_newline=True,
        undefined=StrictUndefined,
        autoescape=False,
    )
    env.filters["hostport"] = hostport
    return env


class ConfigRenderer:
    """Renders a RoutingTable into nginx configuration bytes.

    Output depends only on the table's data; the template must not pull in
    anything time- or host-dependent.
    """

    def __init__(self, template_dir: str | Path | None = None, template_name: str = TEMPLATE_NAME):
        self.env = build_template_environment(template_dir)
        self.template_name = template_name

    def render(self, table: RoutingTable) -> bytes:
        try:
            text = self.env.get_template(self.template_name).render(table=table)
            return text.encode("utf-8")
        except (TemplateError, UnicodeError) as e:
            raise RenderError(f"cannot render configuration: {type(e).__name__}: {e}") from e


def digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@dataclass(frozen=True)
class ChangeResult:
    data: bytes
    digest: str
    changed: bool


def detect_change(table: RoutingTable, last_digest: str | None, renderer: ConfigRenderer) -> ChangeResult:
    """Render ``table`` and compare its digest with the last applied one.

    ``last_digest=None`` means nothing was applied yet, so the result is
    always a change.
    """
    data = renderer.render(table)
    d = digest(data)
    return ChangeResult(data=data, digest=d, changed=(last_digest is None or d != last_digest))
