"""Pydantic schemas for waitlist responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class WaitlistResponse(BaseModel):
    success: bool = Field(..., description="True once the signup is recorded.")
