"""HTTP middleware."""
from gatepass.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
