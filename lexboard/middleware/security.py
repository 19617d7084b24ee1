"""
Security Headers Middleware
===========================

Hardening headers for a JSON-only API, plus an optional redirect of plain
HTTP requests when the service must only be reached over TLS.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

# Nothing served by the API is meant to be rendered or framed
API_CSP = "default-src 'none'; frame-ancestors 'none'"
DOCS_PREFIXES = ("/docs", "/redoc")


def request_is_https(request: Request) -> bool:
    return request.url.scheme == "https" or request.headers.get("x-forwarded-proto") == "https"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, enforce_https: bool = False, hsts_max_age: int = 31536000):
        super().__init__(app)
        self.enforce_https = enforce_https
        self.hsts_max_age = hsts_max_age

    async def dispatch(self, request: Request, call_next) -> Response:
        https = request_is_https(request)
        if self.enforce_https and not https:
            return RedirectResponse(request.url.replace(scheme="https"), status_code=301)

        response = await call_next(request)

        headers = response.headers
        headers["X-Content-Type-Options"] = "nosniff"
        headers["X-Frame-Options"] = "DENY"
        headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if https:
            headers["Strict-Transport-Security"] = f"max-age={self.hsts_max_age}; includeSubDomains"
        # Swagger UI needs its own scripts and styles
        if not request.url.path.startswith(DOCS_PREFIXES):
            headers["Content-Security-Policy"] = API_CSP

        return response
