"""
schemas/common.py

- Shared response shapes (pydantic v2)
  1) error body: ErrorDetail, ErrorResponse
  2) success envelope: ok()
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, ConfigDict


# =========================================================
# 1) Error body
# =========================================================

class ErrorDetail(BaseModel):
    """Smallest unit of an error: code + human readable message"""
    code: str = Field(..., description="error code (e.g. NOT_FOUND, VALIDATION_ERROR)")
    message: str = Field(..., description="human readable message")
    details: Optional[Any] = Field(default=None, description="field errors for VALIDATION_ERROR")


class ErrorResponse(BaseModel):
    """
    Body returned by every global error handler
    - middlewares/error_handler.py renders exceptions through this schema
    """
    error: ErrorDetail
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="response time (UTC)"
    )
    latency_ms: Optional[int] = Field(
        default=None, ge=0, description="request duration in ms (from TimingMiddleware)"
    )
    trace_id: Optional[str] = Field(
        default=None, description="copied from the X-Request-ID header when present"
    )

    model_config = ConfigDict(extra="ignore")


# =========================================================
# 2) Success envelope
# =========================================================

def ok(data: Any, message: Optional[str] = None, **extra: Any) -> dict:
    """{"success": True, "data": ..., "message": ...} plus any extra top-level keys"""
    body = {"success": True, "data": data}
    if message is not None:
        body["message"] = message
    body.update(extra)
    return body
