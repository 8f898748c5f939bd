from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from .events import utc_now
from .models import RoutingTable


@dataclass(frozen=True)
class AppliedConfig:
    digest: str
    table: RoutingTable
    applied_at: str
    reloaded: bool


class RuntimeState:
    """What the status API reads. Written only by the reconciliation thread."""

    def __init__(self) -> None:
        self.lock = Lock()
        self.applied: AppliedConfig | None = None
        self.ticks = 0
        self.applies = 0
        self.failures = 0
        self.last_tick_at: str | None = None

    def record_tick(self, ok: bool) -> None:
        with self.lock:
            self.ticks += 1
            self.last_tick_at = utc_now()
            if not ok:
                self.failures += 1

    def record_applied(self, digest: str, table: RoutingTable, reloaded: bool) -> None:
        with self.lock:
            self.applies += 1
            self.applied = AppliedConfig(digest=digest, table=table, applied_at=utc_now(), reloaded=reloaded)

    def snapshot(self) -> dict:
        with self.lock:
            return {
                "digest": self.applied.digest if self.applied else None,
                "applied_at": self.applied.applied_at if self.applied else None,
                "reloaded": self.applied.reloaded if self.applied else None,
                "ticks": self.ticks,
                "applies": self.applies,
                "failures": self.failures,
                "last_tick_at": self.last_tick_at,
            }

    def table(self) -> RoutingTable:
        with self.lock:
            return self.applied.table if self.applied else RoutingTable()
