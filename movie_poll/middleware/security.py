"""
Security headers for every API response
"""
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers (XSS, clickjacking, CSP, HSTS outside development)"""

    def __init__(self, app, enable_hsts: bool = False):
        super().__init__(app)
        self.enable_hsts = enable_hsts

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"

        if self.enable_hsts:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # Swagger UI loads from jsdelivr; posters come from the TMDB image CDN
        csp_directives = [
            "default-src 'self'",
            "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
            "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
            "img-src 'self' https://image.tmdb.org https://fastapi.tiangolo.com data:",
            "connect-src 'self' https://api.themoviedb.org",
        ]
        response.headers["Content-Security-Policy"] = "; ".join(csp_directives)
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response
