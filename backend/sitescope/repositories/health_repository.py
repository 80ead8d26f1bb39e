from __future__ import annotations

import logging
import time
from collections.abc import Callable

import psutil
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from sitescope.schemas.health import DatabaseStatus, MemoryUsage, SystemInfo


logger = logging.getLogger("sitescope.health")


class HealthRepository:
    def __init__(self, engine_factory: Callable[[], Engine], *, process: psutil.Process | None = None) -> None:
        self._engine_factory = engine_factory
        self._process = process or psutil.Process()

    def check_connection(self) -> DatabaseStatus:
        started_at = time.perf_counter()
        try:
            # Engine creation fails here for bad URLs or missing drivers.
            with self._engine_factory().connect() as connection:
                connection.execute(text("SELECT 1"))
        except (SQLAlchemyError, ImportError) as exc:
            logger.warning("database ping failed", extra={"error_message": str(exc)})
            return DatabaseStatus(status="disconnected")
        return DatabaseStatus(
            status="connected",
            response_time_ms=int((time.perf_counter() - started_at) * 1000),
        )

    def system_info(self) -> SystemInfo:
        used = int(self._process.memory_info().rss)
        total = int(psutil.virtual_memory().total)
        return SystemInfo(
            uptime_seconds=max(0.0, time.time() - self._process.create_time()),
            memory=MemoryUsage(
                used=used,
                total=total,
                percentage=round(used / total * 100) if total else 0,
            ),
        )
