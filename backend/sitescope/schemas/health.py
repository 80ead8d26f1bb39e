from typing import Literal

from pydantic import BaseModel

from sitescope.schemas.common import CamelModel


class DatabaseStatus(CamelModel):
    status: Literal["connected", "disconnected"]
    response_time_ms: int | None = None


class MemoryUsage(BaseModel):
    used: int
    total: int
    percentage: int


class SystemInfo(BaseModel):
    uptime_seconds: float
    memory: MemoryUsage


class HealthCheckResult(CamelModel):
    status: Literal["ok", "error"]
    timestamp: str
    uptime: float
    database: DatabaseStatus | None = None
    memory: MemoryUsage | None = None


class SimpleHealth(BaseModel):
    status: str
    timestamp: str


class LivenessOut(BaseModel):
    status: Literal["OK"]
    message: str
    timestamp: str
    version: str
