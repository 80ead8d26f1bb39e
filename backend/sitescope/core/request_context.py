from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field

from starlette.requests import HTTPConnection


@dataclass
class RequestContext:
    request_id: str
    client_ip: str
    start_time: float = field(default_factory=time.perf_counter)

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.start_time) * 1000)


def generate_request_id() -> str:
    return uuid.uuid4().hex


def client_ip(connection: HTTPConnection) -> str:
    forwarded_for = connection.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    real_ip = connection.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if connection.client is not None and connection.client.host:
        return connection.client.host
    return "unknown"


def get_request_context(connection: HTTPConnection) -> RequestContext | None:
    return getattr(connection.state, "request_context", None)
