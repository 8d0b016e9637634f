"""
schemas/common.py

Envelopes shared by every router (pydantic v2)
  1) error body rendered by middlewares/error_handler.py: ErrorDetail, ErrorResponse
  2) list meta derived from limit/offset: MetaInfo, make_meta()
"""

from __future__ import annotations

from datetime import datetime, timezone
from math import ceil
from typing import Any, Optional

from pydantic import BaseModel, Field, ConfigDict


# =========================================================
# 1) Error envelope
# =========================================================

class ErrorDetail(BaseModel):
    code: str = Field(..., description="Error code (e.g. NOT_FOUND, REPORT_LOCKED, CERTIFICATE_CONFLICT)")
    message: str = Field(..., description="Human readable message")
    details: Optional[Any] = Field(default=None, description="Field level errors or conflicting identifiers")

class ErrorResponse(BaseModel):
    """Body of every non-2xx answer of the final report API"""
    success: bool = False
    error: ErrorDetail
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    latency_ms: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(extra="ignore")


# responses= block for routers (OpenAPI only)
ERROR_RESPONSES = {
    403: {"model": ErrorResponse, "description": "Actor may not touch this placement"},
    404: {"model": ErrorResponse, "description": "Placement, report or competency not found"},
    409: {"model": ErrorResponse, "description": "Report issued / certificate number contended"},
    422: {"model": ErrorResponse, "description": "Invalid input, field level details attached"},
}


# =========================================================
# 2) List meta
# =========================================================

class MetaInfo(BaseModel):
    """
    - total: matching reports
    - page/size: page implied by offset/limit (1 based)
    - pages: at least 1, even for an empty list
    """
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    size: int = Field(..., ge=1)
    pages: int = Field(..., ge=1)

    model_config = ConfigDict(extra="ignore")


def make_meta(total: int, limit: int, offset: int) -> MetaInfo:
    size = max(1, limit)
    pages = max(1, ceil(total / size))
    return MetaInfo(total=total, page=offset // size + 1, size=size, pages=pages)
