from __future__ import annotations

from threading import Event, Thread
from typing import Any

from .alerts import send_email
from .declarations import normalize
from .docker_ops import SwarmDirectory
from .errors import (
    ConfigWriteError,
    DiscoveryError,
    EdgeSyncError,
    RenderError,
    ResolutionError,
    SignalError,
    StartupError,
    ValidationError,
)
from .events import log_event
from .models import RoutingTable, ServiceDeclaration
from .nginx import NginxProcess
from .render import ConfigRenderer, detect_change
from .routing import build
from .runtime import RuntimeState
from .settings import Settings, settings as default_settings


class Reconciler:
    """Keeps nginx's configuration in step with the swarm.

    ``bootstrap()`` runs the first cycle synchronously and treats every
    failure as fatal. After ``start()`` a background thread repeats the cycle
    every ``poll_interval_s`` and only logs failures, while a second thread
    waits on nginx. When nginx exits, the watcher asks for shutdown and
    ``wait()`` returns a non-zero status.
    """

    def __init__(
        self,
        directory: Any,
        supervisor: Any,
        renderer: ConfigRenderer | None = None,
        runtime: RuntimeState | None = None,
        cfg: Settings = default_settings,
    ):
        self.directory = directory
        self.supervisor = supervisor
        self.renderer = renderer or ConfigRenderer(cfg.template_dir)
        self.runtime = runtime or RuntimeState()
        self.cfg = cfg
        self.last_digest: str | None = None
        self._shutdown = Event()
        self._exit_code = 0
        self._threads: list[Thread] = []

    # -- one cycle -----------------------------------------------------------

    def collect(self) -> RoutingTable:
        """Discover declarations and build the routing table.

        Declarations that fail to parse or normalize are reported and left
        out. Discovery and resolution failures propagate.
        """
        found = self.directory.list_declarations()
        for err in found.errors:
            self._report_invalid(err)

        declarations: list[ServiceDeclaration] = []
        for raw in found.declarations:
            try:
                declarations.append(normalize(raw, self.cfg.label_prefix))
            except ValidationError as e:
                self._report_invalid(e, raw.name)

        return build(declarations, self.directory.resolve_endpoints, isolate=self.cfg.isolate_resolution_failures)

    def _report_invalid(self, err: ValidationError, service: str | None = None) -> None:
        context = dict(err.context)
        service = context.pop("service", service)
        log_event("WARN", f"Invalid service declaration; skipping: {err.message}", service_name=service, **context)

    def bootstrap(self) -> None:
        """First cycle: render a config, write it and launch nginx."""
        try:
            table = self.collect()
            change = detect_change(table, None, self.renderer)
            self.supervisor.locate()
            self.supervisor.write_config(change.data)
            self.supervisor.start()
        except EdgeSyncError as e:
            log_event("ERROR", f"Startup failed: {e.message}", error=type(e).__name__, **e.context)
            raise StartupError(f"startup failed: {e.message}") from e

        self.last_digest = change.digest
        self.runtime.record_applied(change.digest, table, reloaded=False)
        log_event("INFO", "Initial configuration applied", digest=change.digest, routes=table.as_dict())

    def tick(self) -> bool:
        """Run one reconciliation cycle. Returns True if a new config was written."""
        try:
            table = self.collect()
            change = detect_change(table, self.last_digest, self.renderer)
        except (DiscoveryError, ResolutionError, RenderError) as e:
            log_event("WARN", f"Couldn't generate configuration: {e.message}", error=type(e).__name__, **e.context)
            self.runtime.record_tick(ok=False)
            return False

        log_event("DEBUG", "Generated configuration", digest=change.digest, routes=table.as_dict())
        if not change.changed:
            log_event("DEBUG", "No configuration change; skipping")
            self.runtime.record_tick(ok=True)
            return False

        log_event("INFO", "New configuration", digest=change.digest, routes=table.as_dict())
        try:
            self.supervisor.write_config(change.data)
        except ConfigWriteError as e:
            log_event("WARN", f"Couldn't write configuration: {e.message}", **e.context)
            self.runtime.record_tick(ok=False)
            return False

        reloaded = True
        try:
            self.supervisor.reload()
        except SignalError as e:
            reloaded = False
            log_event("WARN", f"Couldn't reload nginx: {e.message}", **e.context)
            self._alert("nginx reload failed", f"Configuration {change.digest} was written but nginx was not reloaded.\nDetail: {e.message}")

        if reloaded or self.cfg.advance_digest_on_reload_failure:
            self.last_digest = change.digest
            self.runtime.record_applied(change.digest, table, reloaded=reloaded)
        if reloaded:
            log_event("DEBUG", "Configuration reloaded", digest=change.digest)
        self.runtime.record_tick(ok=reloaded)
        return True

    # -- background work -----------------------------------------------------

    def start(self) -> None:
        if self._threads:
            return
        self._threads = [
            Thread(target=self._loop, name="edgesync-reconcile", daemon=True),
            Thread(target=self._watch, name="edgesync-watch", daemon=True),
        ]
        for t in self._threads:
            t.start()

    def _loop(self) -> None:
        log_event("INFO", "Reconciler started", interval_s=self.cfg.poll_interval_s)
        while not self._shutdown.wait(max(1, self.cfg.poll_interval_s)):
            log_event("DEBUG", "Polling docker")
            try:
                self.tick()
            except Exception as e:
                log_event("ERROR", f"Reconciler tick failed: {type(e).__name__}: {e}")
                self.runtime.record_tick(ok=False)

    def _watch(self) -> None:
        code = self.supervisor.wait()
        if self._shutdown.is_set():
            return
        log_event("ERROR", "nginx process died", returncode=code)
        self._alert("nginx exited", f"nginx exited with status {code}; edgesync is shutting down.")
        self.request_shutdown(1)

    def _alert(self, subject: str, body: str) -> None:
        if not self.cfg.enable_email:
            return
        if not send_email(f"edgesync: {subject}", body, self.cfg):
            log_event("WARN", "Couldn't send alert email", subject=subject)

    def request_shutdown(self, exit_code: int = 0) -> None:
        if self._shutdown.is_set():
            return
        self._exit_code = exit_code
        self._shutdown.set()

    @property
    def stopping(self) -> bool:
        return self._shutdown.is_set()

    def wait(self) -> int:
        """Block until shutdown is requested, then stop nginx and return the exit status."""
        while not self._shutdown.wait(1.0):
            pass
        self.supervisor.stop()
        for t in self._threads:
            t.join(timeout=5.0)
        log_event("INFO", "Reconciler stopped", exit_code=self._exit_code)
        return self._exit_code


def build_reconciler(cfg: Settings = default_settings, runtime: RuntimeState | None = None) -> Reconciler:
    directory = SwarmDirectory(label_prefix=cfg.label_prefix, api_version=cfg.docker_api_version)
    supervisor = NginxProcess(cfg.config_path, binary=cfg.nginx_binary, extra_args=cfg.nginx_args)
    return Reconciler(directory, supervisor, ConfigRenderer(cfg.template_dir), runtime, cfg)
