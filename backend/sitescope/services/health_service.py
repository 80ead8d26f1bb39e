from __future__ import annotations

import logging
import time
from typing import Protocol

import psutil
from sqlalchemy.exc import SQLAlchemyError

from sitescope.api.response import utc_timestamp
from sitescope.schemas.health import DatabaseStatus, HealthCheckResult, SimpleHealth, SystemInfo


logger = logging.getLogger("sitescope.health")
_SERVICE_STARTED_AT = time.monotonic()


class HealthDataSource(Protocol):
    def check_connection(self) -> DatabaseStatus: ...

    def system_info(self) -> SystemInfo: ...


class HealthService:
    def __init__(self, repository: HealthDataSource) -> None:
        self._repository = repository

    def perform_health_check(self) -> HealthCheckResult:
        try:
            system = self._repository.system_info()
            database = self._repository.check_connection()
        except (psutil.Error, OSError, SQLAlchemyError):
            logger.exception("health probe failed")
            return HealthCheckResult(
                status="error",
                timestamp=utc_timestamp(),
                uptime=time.monotonic() - _SERVICE_STARTED_AT,
            )
        return HealthCheckResult(
            status="ok" if database.status == "connected" else "error",
            timestamp=utc_timestamp(),
            uptime=system.uptime_seconds,
            database=database,
            memory=system.memory,
        )

    def simple_health_check(self) -> SimpleHealth:
        return SimpleHealth(status="ok", timestamp=utc_timestamp())
