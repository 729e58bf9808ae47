"""
Request Tracking Middleware
Tags every request with an id and timing headers and keeps a short history
"""
import time
import uuid
from collections import deque
from datetime import datetime
from typing import Deque, Dict
from zoneinfo import ZoneInfo

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.logging_config import get_logger, request_id_var

logger = get_logger(__name__)
IST = ZoneInfo("Asia/Kolkata")

SLOW_REQUEST_SECONDS = 1.0


class RequestTracker:
    """Keeps the most recent requests in memory"""

    def __init__(self, max_requests: int = 1000):
        self.requests: Deque[Dict] = deque(maxlen=max_requests)
        self.total_requests = 0
        self.total_errors = 0

    def log_request(self, request: Request, status_code: int, response_time: float, request_id: str):
        self.requests.append({
            "request_id": request_id,
            "timestamp": datetime.now(IST).isoformat(),
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "response_time": round(response_time * 1000, 2),
            "is_error": status_code >= 400,
        })
        self.total_requests += 1
        if status_code >= 400:
            self.total_errors += 1

        if response_time > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"SLOW REQUEST: {request.method} {request.url.path} - "
                f"{response_time*1000:.0f}ms - Status: {status_code}"
            )

    def summary(self) -> Dict:
        return {"total": self.total_requests, "errors": self.total_errors}


# Global request tracker instance
request_tracker = RequestTracker()


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """Middleware to track all requests"""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception:
            request_tracker.log_request(request, 500, time.time() - start_time, request_id)
            raise
        finally:
            request_id_var.reset(token)

        response_time = time.time() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{response_time*1000:.2f}ms"
        request_tracker.log_request(request, response.status_code, response_time, request_id)
        return response
