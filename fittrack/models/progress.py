"""
Progress entry models for request/response schemas.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .goals import as_utc

ProgressRange = Literal["week", "month", "year"]


class ProgressCreate(BaseModel):
    """Schema for logging a measurement against one of the caller's goals."""

    model_config = ConfigDict(extra="forbid")

    goalId: str = Field(..., min_length=1)
    value: float = Field(..., gt=0, allow_inf_nan=False)
    date: datetime = Field(..., description="When the measurement was taken")
    notes: str | None = Field(None, max_length=500)

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: datetime) -> datetime:
        return as_utc(value)


class ProgressUpdate(BaseModel):
    """Schema for updating a progress entry. goalId cannot be changed."""

    model_config = ConfigDict(extra="forbid")

    value: float | None = Field(None, gt=0, allow_inf_nan=False)
    date: datetime | None = None
    notes: str | None = Field(None, max_length=500)

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class ProgressResponse(BaseModel):
    """Schema for progress entry response."""

    id: str
    goalId: str
    userId: str
    value: float
    date: datetime
    notes: str | None = None
    createdAt: datetime
    updatedAt: datetime

    model_config = ConfigDict(from_attributes=True)
