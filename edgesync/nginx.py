from __future__ import annotations

import shutil
import signal
import subprocess
from enum import Enum
from typing import Sequence

from .errors import ConfigWriteError, LaunchError, SignalError
from .events import log_event


class ProcessState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    EXITED = "exited"


class NginxProcess:
    """The managed nginx child: launch, config write, reload and exit watch.

    nginx is started once with ``-c <config_path>`` and runs in the
    foreground (the template sets ``daemon off``). Reload is a single SIGHUP.
    """

    def __init__(self, config_path: str, binary: str = "nginx", extra_args: Sequence[str] = ()):
        self.config_path = config_path
        self.binary = binary
        self.extra_args = list(extra_args)
        self.proc: subprocess.Popen | None = None
        self.state = ProcessState.NOT_STARTED
        self.returncode: int | None = None

    @property
    def pid(self) -> int | None:
        return self.proc.pid if self.proc else None

    def locate(self) -> str:
        path = shutil.which(self.binary)
        if path is None:
            raise LaunchError(f"cannot find {self.binary!r} on PATH", binary=self.binary)
        return path

    def command(self, path: str) -> list[str]:
        return [path, "-c", self.config_path, *self.extra_args]

    def start(self) -> None:
        if self.state is not ProcessState.NOT_STARTED:
            raise LaunchError(f"nginx already {self.state.value}")
        path = self.locate()
        try:
            # stdio is inherited so nginx logs land next to ours.
            self.proc = subprocess.Popen(self.command(path))
        except OSError as e:
            raise LaunchError(f"cannot start {path}: {e}", binary=path) from e
        self.state = ProcessState.RUNNING
        log_event("INFO", "nginx started", pid=self.proc.pid, config=self.config_path)

    def write_config(self, data: bytes) -> None:
        try:
            with open(self.config_path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise ConfigWriteError(f"cannot write {self.config_path}: {e}", path=self.config_path) from e
        log_event("DEBUG", "configuration written", path=self.config_path, bytes=len(data))

    def is_running(self) -> bool:
        return self.proc is not None and self.proc.poll() is None

    def reload(self) -> None:
        if not self.is_running():
            raise SignalError("nginx is not running", state=self.state.value)
        try:
            self.proc.send_signal(signal.SIGHUP)
        except OSError as e:
            raise SignalError(f"cannot signal nginx: {e}", pid=self.pid) from e

    def wait(self) -> int:
        """Block until nginx exits and return its exit status."""
        if self.proc is None:
            raise LaunchError("nginx was never started")
        self.returncode = self.proc.wait()
        self.state = ProcessState.EXITED
        return self.returncode

    def stop(self, timeout_s: float = 10.0) -> None:
        if not self.is_running():
            return
        self.proc.terminate()
        try:
            self.proc.wait(timeout=timeout_s)
        except subprocess.TimeoutExpired:
            self.proc.kill()
            self.proc.wait()
