"""Middleware package for the generation service."""

from recruiter.app.middleware.rate_limit import AdmissionGate, RateLimitMiddleware
from recruiter.app.middleware.request_id import RequestIdMiddleware, get_request_id
from recruiter.app.middleware.request_size import RequestSizeLimitMiddleware

__all__ = [
    "AdmissionGate",
    "RateLimitMiddleware",
    "RequestIdMiddleware",
    "RequestSizeLimitMiddleware",
    "get_request_id",
]
