from __future__ import annotations

import argparse
import json
import signal
import sys
from dataclasses import replace

import requests

from .api import create_app, serve_in_background
from .errors import EdgeSyncError, StartupError
from .events import log_event
from .logs import configure_logging
from .reconciler import build_reconciler
from .settings import Settings, settings


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {}
    if getattr(args, "interval", None) is not None:
        overrides["poll_interval_s"] = args.interval
    if getattr(args, "config_path", None):
        overrides["config_path"] = args.config_path
    if getattr(args, "template_dir", None):
        overrides["template_dir"] = args.template_dir
    if getattr(args, "api_port", None) is not None:
        overrides["api_port"] = args.api_port
    if getattr(args, "api_host", None):
        overrides["api_host"] = args.api_host
    if getattr(args, "nginx_args", None):
        overrides["nginx_args"] = tuple(args.nginx_args)
    if getattr(args, "debug", False):
        overrides["debug"] = True
    if getattr(args, "log_json", False):
        overrides["log_json"] = True
    return replace(settings, **overrides)


def _run(cfg: Settings) -> int:
    reconciler = build_reconciler(cfg)
    try:
        reconciler.bootstrap()
    except StartupError:
        return 1

    def _on_signal(signum, frame) -> None:
        log_event("INFO", f"Received {signal.Signals(signum).name}; shutting down")
        reconciler.request_shutdown(0)

    signal.signal(signal.SIGTERM, _on_signal)
    signal.signal(signal.SIGINT, _on_signal)

    if cfg.api_port > 0:
        serve_in_background(create_app(reconciler.runtime, reconciler.supervisor), cfg.api_host, cfg.api_port)
        log_event("INFO", "Status API listening", host=cfg.api_host, port=cfg.api_port)

    reconciler.start()
    return reconciler.wait()


def _render(cfg: Settings) -> int:
    reconciler = build_reconciler(cfg)
    try:
        table = reconciler.collect()
        data = reconciler.renderer.render(table)
    except EdgeSyncError as e:
        log_event("ERROR", f"Couldn't generate configuration: {e.message}", error=type(e).__name__, **e.context)
        return 1
    sys.stdout.write(data.decode("utf-8"))
    return 0


def _default_api(cfg: Settings) -> str:
    return f"http://{cfg.api_host}:{cfg.api_port or 8080}"


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="edgesync", description="Keep an nginx stream proxy in sync with Docker Swarm")
    sub = p.add_subparsers(dest="cmd", required=True)

    logging_opts = argparse.ArgumentParser(add_help=False)
    logging_opts.add_argument("--debug", action="store_true", help="Debug logging (or EDGESYNC_DEBUG=true)")
    logging_opts.add_argument("--log-json", action="store_true", help="Log JSON lines instead of console output")

    s_run = sub.add_parser("run", parents=[logging_opts], help="Launch nginx and reconcile until it exits")
    s_run.add_argument("--interval", type=int, help="Seconds between reconciliation cycles")
    s_run.add_argument("--config-path", help="nginx configuration path (passed as -c)")
    s_run.add_argument("--template-dir", help="Directory holding an nginx.conf.j2 override")
    s_run.add_argument("--api-host", help="Status API bind address")
    s_run.add_argument("--api-port", type=int, help="Status API port (0 disables it)")
    s_run.add_argument("nginx_args", nargs="*", help="Extra nginx arguments, after --")

    s_render = sub.add_parser("render", parents=[logging_opts], help="Print the configuration for the current swarm state")
    s_render.add_argument("--template-dir", help="Directory holding an nginx.conf.j2 override")

    for name, text in (("status", "Show proxy status"), ("routes", "Show applied routes"), ("events", "Show recent events")):
        s = sub.add_parser(name, help=text)
        s.add_argument(
            "--api",
            default=_default_api(settings),
            help="Status API base URL; the instance must run with --api-port or EDGESYNC_API_PORT set",
        )
        if name == "events":
            s.add_argument("--limit", type=int, default=20)

    args = p.parse_args(argv)

    if args.cmd in {"run", "render"}:
        cfg = _settings_from_args(args)
        configure_logging(debug=cfg.debug, log_json=cfg.log_json)
        return _run(cfg) if args.cmd == "run" else _render(cfg)

    base = args.api.rstrip("/")

    if args.cmd == "status":
        r = requests.get(f"{base}/health", timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "routes":
        _print(requests.get(f"{base}/routes", timeout=10).json())
        return 0

    if args.cmd == "events":
        _print(requests.get(f"{base}/events", params={"limit": args.limit}, timeout=10).json())
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
