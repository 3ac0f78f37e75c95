"""
schemas/common.py

- Schemas shared across the project (Pydantic v2)
- Contents:
  1) error response standard: ErrorDetail, ErrorResponse
  2) pagination: Pagination, MetaInfo, make_meta()
  3) caller identity: Principal
  4) shared field types: Role, Term, Session
"""

from __future__ import annotations

from datetime import datetime, timezone
from math import ceil
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, Field, ConfigDict


# =========================================================
# 1) error response standard
# =========================================================

class ErrorDetail(BaseModel):
    """Smallest unit carrying an error code and message"""
    code: str = Field(..., description="error code (e.g. NOT_FOUND, INVALID_TRANSITION)")
    message: str = Field(..., description="human readable message")

class ErrorResponse(BaseModel):
    """
    Standard error body returned by the global handlers
    - middlewares/error_handler.py builds its responses from this schema
    """
    success: bool = False
    error: ErrorDetail
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="response creation time (UTC)"
    )
    latency_ms: Optional[int] = Field(
        default=None, ge=0, description="time spent on the request (ms), filled from the timing middleware"
    )

    model_config = ConfigDict(extra="ignore")


# =========================================================
# 2) pagination request/meta
# =========================================================

class Pagination(BaseModel):
    """
    Paging parameters for list endpoints
    - page: starts at 1
    - size: 1~200
    """
    page: int = Field(1, ge=1, description="current page (1-based)")
    size: int = Field(50, ge=1, le=200, description="items per page")

    model_config = ConfigDict(extra="ignore")


class MetaInfo(BaseModel):
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    size: int = Field(..., ge=1)
    pages: int = Field(..., ge=1)

    model_config = ConfigDict(extra="ignore")


def make_meta(total: int, page: int, size: int) -> MetaInfo:
    """
    Build paging meta
    - pages is at least 1 even when total is 0
    """
    pages = max(1, ceil(total / max(1, size)))
    return MetaInfo(total=total, page=page, size=size, pages=pages)


# =========================================================
# 3) caller identity
# =========================================================

Role = Literal["admin", "teacher", "parent"]
Term = Literal["First Term", "Second Term", "Third Term"]
SESSION_PATTERN = r"^\d{4}/\d{4}$"
Session = Annotated[str, Field(pattern=SESSION_PATTERN, examples=["2024/2025"])]


class Principal(BaseModel):
    """Resolved caller, passed explicitly into every service call"""
    user_id: int
    school_id: int
    role: Role

    model_config = ConfigDict(frozen=True)
