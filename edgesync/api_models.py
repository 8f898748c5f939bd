from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class BackendOut(BaseModel):
    address: str
    port: int = Field(..., ge=0, le=65535)


class RouteOut(BaseModel):
    name: str = Field(..., description="Swarm service name")
    listen_address: str
    listen_port: int = Field(..., ge=0, le=65535)
    listen_protocol: str = Field(..., description="tcp|udp")
    backends: list[BackendOut] = Field(default_factory=list)


class HealthOut(BaseModel):
    status: str = Field(..., description="healthy|unhealthy")
    proxy: str = Field(..., description="not_started|running|exited")
    pid: int | None = None
    digest: str | None = Field(None, description="SHA-256 of the applied nginx.conf")
    applied_at: str | None = None
    reloaded: bool | None = None
    ticks: int = 0
    applies: int = 0
    failures: int = 0
    last_tick_at: str | None = None


class EventOut(BaseModel):
    ts: str
    level: str
    service_name: str | None = None
    message: str
    context: dict[str, Any] = Field(default_factory=dict)
