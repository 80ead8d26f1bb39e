from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


_BASE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
}
_CONTENT_SECURITY_POLICY = "default-src 'self'"
_HSTS = "max-age=31536000; includeSubDomains"
# The interactive docs page pulls its assets from a CDN.
_DOCS_PATHS = ("/api-docs", "/openapi.json")


def security_headers(path: str, *, production: bool) -> dict[str, str]:
    headers = dict(_BASE_HEADERS)
    if not path.startswith(_DOCS_PATHS):
        headers["Content-Security-Policy"] = _CONTENT_SECURITY_POLICY
    if production:
        headers["Strict-Transport-Security"] = _HSTS
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, production: bool) -> None:
        super().__init__(app)
        self._production = production

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in security_headers(request.url.path, production=self._production).items():
            response.headers.setdefault(name, value)
        return response
