"""Unified API response envelope.

Every endpoint, success or failure, answers with:
{
    "code": 0,           // 0=success, otherwise the AppError code
    "message": "success",
    "data": { ... },     // null on error
    "timestamp": "...",
    "request_id": "..."
}
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field
from starlette.requests import Request


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def success_response(data: Any = None, request: Request | None = None) -> ApiResponse:
    resp = ApiResponse(code=0, message="success", data=data)
    if request is not None:
        # RequestLogMiddleware stamps the id; fall back to the generated one
        resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


def error_response(code: int, message: str) -> ApiResponse:
    return ApiResponse(code=code, message=message, data=None)
