from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from enum import StrEnum
from typing import Any
from urllib.parse import parse_qsl

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from sitescope.core.logging_config import ContextLogger, get_context_logger
from sitescope.core.request_context import RequestContext, client_ip, generate_request_id


http_logger = get_context_logger("HTTP")

REDACTED = "[REDACTED]"
SENSITIVE_FIELDS = frozenset({"password", "token", "secret", "key", "auth", "authorization"})
MAX_LOGGED_BODY_BYTES = 64 * 1024
_LOGGED_REQUEST_HEADERS = ("content-type", "accept", "origin", "referer")
_FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"


def sanitize(data: Any) -> Any:
    """Redact sensitive top-level keys of a mapping; nested values are left as-is."""
    if not isinstance(data, dict):
        return data
    return {key: REDACTED if str(key).lower() in SENSITIVE_FIELDS else value for key, value in data.items()}


def decode_body(raw: bytes | None, content_type: str | None = None) -> Any:
    """Parse a payload for logging; raw text is never returned."""
    if not raw:
        return None
    if len(raw) > MAX_LOGGED_BODY_BYTES:
        return f"<{len(raw)} bytes omitted>"
    media_type = (content_type or "").split(";")[0].strip().lower()
    unparsed = f"<{len(raw)} bytes, unparsed>"
    try:
        if media_type == _FORM_MEDIA_TYPE:
            return dict(parse_qsl(raw.decode("utf-8"), keep_blank_values=True))
        parsed = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return unparsed
    # A bare JSON string is free text and cannot be redacted by key.
    return unparsed if isinstance(parsed, str) else parsed


def completion_level(status_code: int, duration_ms: int, slow_threshold_ms: int) -> tuple[int, str]:
    if status_code >= 500:
        return logging.ERROR, "Request completed with server error"
    if status_code >= 400:
        return logging.WARNING, "Request completed with client error"
    if duration_ms > slow_threshold_ms:
        return logging.WARNING, "Slow request detected"
    return logging.INFO, "Request completed successfully"


class TapState(StrEnum):
    STARTED = "started"
    RESPONSE_CAPTURED = "response_captured"
    FINISHED = "finished"


class RequestLogTap:
    def __init__(
        self,
        request: Request,
        context: RequestContext,
        *,
        slow_threshold_ms: int,
        log_response_bodies: bool,
        logger: ContextLogger = http_logger,
    ) -> None:
        self.request = request
        self.context = context
        self.slow_threshold_ms = slow_threshold_ms
        self.log_response_bodies = log_response_bodies
        self.logger = logger
        self.state = TapState.STARTED
        self.status_code: int | None = None
        self.response_content_type: str | None = None

    def log_incoming(self, body: bytes | None) -> None:
        content_type = self.request.headers.get("content-type")
        self.logger.info(
            "Incoming request",
            extra={
                "request_id": self.context.request_id,
                "method": self.request.method,
                "url": str(self.request.url),
                "client_ip": self.context.client_ip,
                "user_agent": self.request.headers.get("user-agent", "unknown"),
                "query": sanitize(dict(self.request.query_params)),
                "body": None if self.request.method == "GET" else sanitize(decode_body(body, content_type)),
                "headers": {name: self.request.headers.get(name) for name in _LOGGED_REQUEST_HEADERS},
            },
        )

    def capture_response(self, status_code: int, content_type: str | None = None) -> None:
        if self.state is TapState.STARTED:
            self.status_code = status_code
            self.response_content_type = content_type
            self.state = TapState.RESPONSE_CAPTURED

    def complete(self, status_code: int | None = None, body: bytes | None = None, *, content_length: int = 0) -> bool:
        """Emit the single completion record. Returns False when already finished."""
        if self.state is TapState.FINISHED:
            return False
        self.state = TapState.FINISHED
        final_status = status_code if status_code is not None else (self.status_code or 500)
        duration_ms = self.context.elapsed_ms()
        extra: dict[str, Any] = {
            "request_id": self.context.request_id,
            "method": self.request.method,
            "url": str(self.request.url),
            "status_code": final_status,
            "duration_ms": duration_ms,
            "content_length": content_length,
        }
        if final_status >= 400 or self.log_response_bodies:
            extra["response_data"] = sanitize(decode_body(body, self.response_content_type))
        level, message = completion_level(final_status, duration_ms, self.slow_threshold_ms)
        self.logger.log(level, message, extra=extra)
        return True


async def _observe_body(body_iterator: AsyncIterator[bytes], tap: RequestLogTap, status_code: int) -> AsyncIterator[bytes]:
    captured = bytearray()
    total = 0
    try:
        async for chunk in body_iterator:
            if isinstance(chunk, str):
                chunk = chunk.encode("utf-8")
            total += len(chunk)
            if len(captured) <= MAX_LOGGED_BODY_BYTES:
                captured.extend(chunk)
            yield chunk
    finally:
        tap.complete(status_code, bytes(captured), content_length=total)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, slow_request_threshold_ms: int, log_response_bodies: bool) -> None:
        super().__init__(app)
        self._slow_request_threshold_ms = slow_request_threshold_ms
        self._log_response_bodies = log_response_bodies

    async def _request_body(self, request: Request) -> bytes | None:
        if request.method == "GET":
            return None
        declared = request.headers.get("content-length")
        try:
            if declared is None or int(declared) > MAX_LOGGED_BODY_BYTES:
                return None
        except ValueError:
            return None
        return await request.body()

    async def dispatch(self, request: Request, call_next):
        context = RequestContext(request_id=generate_request_id(), client_ip=client_ip(request))
        request.state.request_context = context
        tap = RequestLogTap(
            request,
            context,
            slow_threshold_ms=self._slow_request_threshold_ms,
            log_response_bodies=self._log_response_bodies,
        )
        tap.log_incoming(await self._request_body(request))
        try:
            response = await call_next(request)
        except BaseException:
            tap.complete(500)
            raise
        tap.capture_response(response.status_code, response.headers.get("content-type"))
        response.headers["X-Request-ID"] = context.request_id
        response.body_iterator = _observe_body(response.body_iterator, tap, response.status_code)
        return response
