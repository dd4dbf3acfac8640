"""Pydantic schemas for the current-user endpoint."""

from __future__ import annotations

from pydantic import BaseModel, Field


class UserProfileResponse(BaseModel):
    """Profile of the authenticated caller."""

    id: str
    email: str
    account_type: str = Field(..., description="'student' or 'teacher'.")
    full_name: str | None = None
