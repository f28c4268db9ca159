"""ApiResponse envelope shared by every router and the AppError handler.

    {"code": 0, "message": "success", "data": {...},
     "timestamp": "2026-01-01T00:00:00+00:00", "request_id": "req_..."}

code is 0 on success and the AppError code otherwise; data is null on error.
The request id is the one RequestLogMiddleware put on request.state, so the
body and the X-Request-ID header always agree.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from pydantic import BaseModel, Field


def _new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=_new_request_id)


def request_id_of(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def success_response(data: Any = None, request_id: str | None = None) -> ApiResponse:
    return ApiResponse(data=data, request_id=request_id or _new_request_id())


def error_response(code: int, message: str, request_id: str | None = None) -> ApiResponse:
    return ApiResponse(
        code=code, message=message, data=None, request_id=request_id or _new_request_id()
    )


def envelope(request: Request, data: Any) -> ApiResponse:
    """Success envelope carrying the current request's id."""
    return success_response(data, request_id_of(request))
