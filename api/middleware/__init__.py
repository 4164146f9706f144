"""API middleware."""

from api.middleware.request_context import RequestContextMiddleware

__all__ = ["RequestContextMiddleware"]
