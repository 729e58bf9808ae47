"""
Middleware for Campus Transit Booking
"""
from app.middleware.request_tracking import RequestTrackingMiddleware, request_tracker

__all__ = [
    "RequestTrackingMiddleware",
    "request_tracker",
]
