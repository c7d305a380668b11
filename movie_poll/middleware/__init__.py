"""
Middleware package for response hardening
"""
from .security import SecurityHeadersMiddleware

__all__ = [
    "SecurityHeadersMiddleware",
]
