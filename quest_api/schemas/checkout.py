"""Pydantic schemas for checkout responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class CheckoutResponse(BaseModel):
    url: str = Field(..., description="Hosted checkout page the client redirects to.")
